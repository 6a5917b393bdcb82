"""Validators that run first in a view submission chain."""

from __future__ import annotations

from typing import Any, Mapping

from slack_jira_bot.envelopes import InteractionCallback
from slack_jira_bot.handlers import (
    UNHANDLED,
    HandlerResult,
    MarshalingError,
    PartialHandlerFunc,
    marshal_response,
)

from .views import view_submission_errors


def require_when(
    name: str,
    *,
    trigger_field: str,
    trigger_value: str,
    required_field: str,
    message: str,
) -> PartialHandlerFunc[InteractionCallback]:
    """Require *required_field* to be filled in when *trigger_field* equals *trigger_value*.

    An invalid submission is claimed with an ``errors`` payload keyed to
    *required_field*; a valid one is passed along the chain untouched.
    """

    def _validate(callback: InteractionCallback, logger: Any) -> HandlerResult:
        if callback.field_values.get(trigger_field) != trigger_value:
            return UNHANDLED
        if (callback.field_values.get(required_field) or "").strip():
            return UNHANDLED

        logger.debug("invalid_submission", block_id=required_field)
        try:
            payload = marshal_response(view_submission_errors({required_field: message}))
        except MarshalingError as exc:
            logger.error("validation_response_marshal_failed", error=str(exc))
            return HandlerResult(handled=True, error=exc)
        return HandlerResult(handled=True, response_payload=payload)

    return PartialHandlerFunc(name=name, func=_validate)


def require_fields(name: str, messages: Mapping[str, str]) -> PartialHandlerFunc[InteractionCallback]:
    """Require every block in *messages* to hold more than whitespace.

    Slack only checks that a required input is non-empty, so a value made of
    spaces still reaches the submission chain. Each blank block is flagged with
    its own message.
    """

    def _validate(callback: InteractionCallback, logger: Any) -> HandlerResult:
        errors = {
            block_id: message
            for block_id, message in messages.items()
            if not (callback.field_values.get(block_id) or "").strip()
        }
        if not errors:
            return UNHANDLED

        logger.debug("invalid_submission", block_ids=sorted(errors))
        try:
            payload = marshal_response(view_submission_errors(errors))
        except MarshalingError as exc:
            logger.error("validation_response_marshal_failed", error=str(exc))
            return HandlerResult(handled=True, error=exc)
        return HandlerResult(handled=True, response_payload=payload)

    return PartialHandlerFunc(name=name, func=_validate)
