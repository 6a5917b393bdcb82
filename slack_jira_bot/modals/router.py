"""Route interaction callbacks to the flow whose view produced them."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from slack_sdk.errors import SlackApiError

from slack_jira_bot.background import TaskRunner
from slack_jira_bot.envelopes import SHORTCUT_TYPES, EventEnvelope, InteractionCallback, decode_interaction
from slack_jira_bot.handlers import UNHANDLED, HandlerResult

from .flows import FlowRegistry, RoutingMissError


class ViewOpener(Protocol):
    def open_view(self, *, trigger_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]:
        ...


class InteractionRouter:
    """Dispatch interactions by flow identifier and interaction type.

    A shortcut whose callback id names a flow opens that flow's modal. Any
    other interaction is handed to the flow's follow-up chain for its type; a
    flow without a chain for that type leaves the interaction unclaimed.
    """

    def __init__(self, registry: FlowRegistry, *, opener: ViewOpener, runner: TaskRunner) -> None:
        registry.seal()
        self._registry = registry
        self._opener = opener
        self._runner = runner

    def route(self, callback: InteractionCallback, logger: Any) -> HandlerResult:
        log = logger.bind(
            flow=callback.flow_identifier,
            interaction_type=callback.interaction_type,
            user_id=callback.user_id,
        )

        flow = self._registry.get(callback.flow_identifier)
        if flow is None:
            error = RoutingMissError(
                f"Received an interaction for unknown flow '{callback.flow_identifier}'."
            )
            log.error("interaction_routing_miss", error=str(error))
            return HandlerResult(handled=True, error=error)

        if callback.interaction_type in SHORTCUT_TYPES:
            task = self._runner.submit(self.open_initial, callback, log)
            return HandlerResult(handled=True, task=task)

        chain = flow.follow_ups.get(callback.interaction_type)
        if chain is None:
            log.debug("interaction_unhandled")
            return UNHANDLED

        result = chain.handle(callback, log)
        log.info("interaction_routed", handler=chain.name, handled=result.handled, failed=result.error is not None)
        return result

    def handle(self, envelope: EventEnvelope, logger: Any) -> HandlerResult:
        return self.route(decode_interaction(envelope), logger)

    def open_initial(self, callback: InteractionCallback, log: Any) -> bool:
        view = self._registry.render_initial(callback.flow_identifier)
        try:
            self._opener.open_view(trigger_id=callback.trigger_id, view=view)
        except SlackApiError as exc:
            status_code = getattr(exc.response, "status_code", None) if getattr(exc, "response", None) else None
            error_code = exc.response.get("error") if getattr(exc, "response", None) else str(exc)
            log.error("modal_open_failed", error=error_code, status_code=status_code)
            return False
        log.info("modal_opened")
        return True
