"""Routing for Events API callbacks."""

from __future__ import annotations

from typing import Any

from slack_jira_bot.envelopes import EventCallback, EventEnvelope, decode_event
from slack_jira_bot.handlers import HandlerResult, MultiHandler, PartialHandler
from slack_jira_bot.slack_client import SlackClient

from . import mention


class EventRouter:
    """Offer each decoded event to the registered event handlers in order."""

    def __init__(self, *handlers: PartialHandler[EventCallback]) -> None:
        self._chain: MultiHandler[EventCallback] = MultiHandler(*handlers)

    def route(self, envelope: EventEnvelope, logger: Any) -> HandlerResult:
        event = decode_event(envelope)
        log = logger.bind(event_type=event.type, event_id=event.event_id)

        result = self._chain.handle(event, log)
        if not result.handled:
            log.debug("event_unhandled")
            return result
        if result.error is not None:
            log.error("event_handler_failed", handlers=self._chain.name, error=str(result.error))
        return result


def for_events(client: SlackClient) -> EventRouter:
    """Return the router for every event handler the bot knows about."""

    return EventRouter(mention.handler(client))


__all__ = ["EventRouter", "for_events"]
