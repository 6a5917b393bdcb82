"""Thin wrapper utilities around the Slack WebClient."""

from __future__ import annotations

from typing import Any, Mapping

from slack_sdk import WebClient


class SlackClient:
    """Encapsulate Slack WebClient interactions for easier testing."""

    def __init__(self, *, token: str | None = None, client: WebClient | None = None) -> None:
        if client is None and token is None:
            raise ValueError("Either an instantiated client or a bot token must be provided.")

        self._client = client or WebClient(token=token)

    @property
    def client(self) -> WebClient:
        """Expose the underlying WebClient for advanced use cases."""

        return self._client

    def post_message(
        self,
        *,
        channel: str,
        text: str,
        thread_ts: str | None = None,
    ) -> Mapping[str, Any]:
        """Post a plain message, replying in a thread when *thread_ts* is set."""

        kwargs: dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            kwargs["thread_ts"] = thread_ts
        return self._client.chat_postMessage(**kwargs)

    def open_view(self, *, trigger_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]:
        """Open a modal in response to a user interaction."""

        return self._client.views_open(trigger_id=trigger_id, view=dict(view))

    def update_view(
        self,
        *,
        view_id: str,
        view: Mapping[str, Any],
        view_hash: str | None = None,
    ) -> Mapping[str, Any]:
        """Replace the content of an open modal.

        Without *view_hash* the update always overwrites whatever the modal
        currently shows.
        """

        kwargs: dict[str, Any] = {"view_id": view_id, "view": dict(view)}
        if view_hash:
            kwargs["hash"] = view_hash
        return self._client.views_update(**kwargs)
