"""Flows pair a modal with the handlers that react to interactions with it."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping

from slack_jira_bot.envelopes import InteractionCallback
from slack_jira_bot.handlers import PartialHandler


class DuplicateFlowError(Exception):
    """Raised when two flows are registered under the same identifier."""


class RoutingMissError(LookupError):
    """Raised for an interaction that names a flow this process never registered."""


@dataclass(frozen=True)
class Flow:
    """A modal plus, per interaction type, the chain that follows it up."""

    identifier: str
    initial_view: Mapping[str, Any]
    follow_ups: Mapping[str, PartialHandler[InteractionCallback]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("Flows need a non-empty identifier.")
        object.__setattr__(self, "follow_ups", MappingProxyType(dict(self.follow_ups)))

    def with_follow_ups(self, follow_ups: Mapping[str, PartialHandler[InteractionCallback]]) -> "Flow":
        return replace(self, follow_ups=follow_ups)


def for_view(identifier: str, view: Mapping[str, Any]) -> Flow:
    """Create a flow whose view carries *identifier* in its private metadata."""

    initial_view = dict(view)
    initial_view["private_metadata"] = identifier
    return Flow(identifier=identifier, initial_view=initial_view)


class FlowRegistry:
    """Flows keyed by identifier, filled once at start-up then sealed."""

    def __init__(self, flows: Iterable[Flow] = ()) -> None:
        self._flows: Dict[str, Flow] = {}
        self._sealed = False
        for flow in flows:
            self.register(flow)

    def register(self, flow: Flow) -> None:
        if self._sealed:
            raise RuntimeError("Flows must be registered before the registry is sealed.")
        if flow.identifier in self._flows:
            raise DuplicateFlowError(f"A flow is already registered for '{flow.identifier}'.")
        self._flows[flow.identifier] = flow

    def seal(self) -> None:
        self._sealed = True

    def get(self, identifier: str) -> Flow | None:
        return self._flows.get(identifier)

    def render_initial(self, identifier: str) -> Dict[str, Any]:
        """Return a fresh copy of the view that starts the flow."""

        flow = self._flows.get(identifier)
        if flow is None:
            raise RoutingMissError(f"No flow registered for identifier '{identifier}'.")
        return copy.deepcopy(dict(flow.initial_view))

    @property
    def identifiers(self) -> List[str]:
        return sorted(self._flows)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._flows

    def __len__(self) -> int:
        return len(self._flows)
