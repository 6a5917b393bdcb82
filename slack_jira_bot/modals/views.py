"""Block Kit builders for the modal states shown while and after filing."""

from __future__ import annotations

from typing import Any, Dict, List

from slack_jira_bot.jira import TicketReference

MAX_TITLE_LENGTH = 24

BLOCK_ID_TITLE = "title"


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def _plain(text: str) -> Dict[str, Any]:
    return {"type": "plain_text", "text": text, "emoji": True}


def _modal(title: str, blocks: List[Dict[str, Any]], *, close: str = "Close") -> Dict[str, Any]:
    return {
        "type": "modal",
        "title": _plain(_truncate(title, MAX_TITLE_LENGTH)),
        "close": _plain(close),
        "blocks": blocks,
    }


def pending_view() -> Dict[str, Any]:
    """Shown as soon as a valid submission is accepted."""

    return _modal(
        "Creating Jira Issue",
        [
            {
                "type": "section",
                "text": _plain("A Jira issue is being filed, please do not close this window..."),
            }
        ],
    )


def ticket_view(ticket: TicketReference) -> Dict[str, Any]:
    """Confirmation referencing the filed issue."""

    return _modal(
        "Jira Issue Filed",
        [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"A Jira issue was filed: <{ticket.url}|{ticket.key}>",
                },
            }
        ],
    )


def error_view(action: str, error: Exception | str) -> Dict[str, Any]:
    """Failure notice; the user can open the form again to resubmit."""

    return _modal(
        "Error",
        [
            {
                "type": "section",
                "text": _plain(f"We encountered an error {action}: {error}"),
            },
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": "Open the form again to resubmit."}
                ],
            },
        ],
    )


def view_submission_update(view: Dict[str, Any]) -> Dict[str, Any]:
    """Acknowledgement payload that replaces the submitted modal with *view*."""

    return {"response_action": "update", "view": view}


def view_submission_errors(errors: Dict[str, str]) -> Dict[str, Any]:
    """Acknowledgement payload that keeps the modal open and flags input blocks."""

    return {"response_action": "errors", "errors": dict(errors)}
