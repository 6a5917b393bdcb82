"""Reply in-thread when someone addresses the bot directly."""

from __future__ import annotations

from typing import Any

from slack_sdk.errors import SlackApiError

from slack_jira_bot.envelopes import EventCallback
from slack_jira_bot.handlers import UNHANDLED, HandlerResult, PartialHandlerFunc
from slack_jira_bot.slack_client import SlackClient

APP_MENTION = "app_mention"

MENTION_REPLY = (
    "Hi <@{user}>! I file Jira issues from Slack. "
    "Use the *File a Bug* shortcut from the :zap: menu to open the form."
)


def handler(client: SlackClient, *, reply: str = MENTION_REPLY) -> PartialHandlerFunc[EventCallback]:
    """Return a handler that answers ``app_mention`` events in the mention's thread."""

    def _handle(event: EventCallback, logger: Any) -> HandlerResult:
        if event.type != APP_MENTION:
            return UNHANDLED
        if event.bot_id:
            logger.debug("mention_from_bot_ignored", bot_id=event.bot_id)
            return HandlerResult(handled=True)

        try:
            client.post_message(
                channel=event.channel,
                text=reply.format(user=event.user),
                thread_ts=event.thread_ts or event.ts,
            )
        except SlackApiError as exc:
            status_code = getattr(exc.response, "status_code", None) if getattr(exc, "response", None) else None
            error_code = exc.response.get("error") if getattr(exc, "response", None) else str(exc)
            logger.error("mention_reply_failed", error=error_code, status_code=status_code)
            return HandlerResult(handled=True, error=exc)

        logger.info("mention_replied", channel=event.channel, user_id=event.user)
        return HandlerResult(handled=True)

    return PartialHandlerFunc(name="mention", func=_handle)
