"""Typed views over Socket Mode envelopes and their payloads.

Socket Mode hands us loosely-typed JSON. Each router checks the envelope tag
and immediately decodes the payload into one of the models below, so nothing
past the routers sees raw dictionaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

EVENTS_API = "events_api"
INTERACTIVE = "interactive"

VIEW_SUBMISSION = "view_submission"
VIEW_CLOSED = "view_closed"
BLOCK_ACTIONS = "block_actions"
SHORTCUT = "shortcut"
MESSAGE_ACTION = "message_action"

SHORTCUT_TYPES = frozenset({SHORTCUT, MESSAGE_ACTION})


class EnvelopeDecodeError(ValueError):
    """Raised when an envelope payload does not match the expected shape."""


@dataclass(frozen=True)
class EventEnvelope:
    """A single delivery from the transport, acknowledged exactly once."""

    kind: str
    payload: Mapping[str, Any]
    ack_token: str
    retry_attempt: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload or {})))


class _SlackUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""


class _ViewState(BaseModel):
    model_config = ConfigDict(extra="ignore")

    values: Dict[str, Dict[str, Dict[str, Any]]] = Field(default_factory=dict)


class _CallbackView(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    hash: str = ""
    private_metadata: str = ""
    callback_id: str = ""
    state: _ViewState = Field(default_factory=_ViewState)


class _RawInteraction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    user: _SlackUser = Field(default_factory=_SlackUser)
    view: _CallbackView | None = None
    callback_id: str = ""
    trigger_id: str = ""


@dataclass(frozen=True)
class InteractionCallback:
    """An interaction with one of our views (or a shortcut naming a flow)."""

    interaction_type: str
    flow_identifier: str
    user_id: str = ""
    view_id: str = ""
    view_hash: str = ""
    trigger_id: str = ""
    field_values: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_values", MappingProxyType(dict(self.field_values)))

    @property
    def submission_key(self) -> str:
        """Identity of one logical submission: flow, submitting user and view instance."""

        return f"{self.flow_identifier}:{self.user_id}:{self.view_id}"


class EventCallback(BaseModel):
    """The inner event of an Events API envelope."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str
    event_id: str = ""
    user: str = ""
    bot_id: str = ""
    channel: str = ""
    text: str = ""
    ts: str = ""
    thread_ts: str = ""


def _selected_value(element: Mapping[str, Any]) -> str | None:
    if "selected_option" in element:
        option = element.get("selected_option") or {}
        return option.get("value") or ""
    if "selected_options" in element:
        options = element.get("selected_options") or []
        return ", ".join(option.get("value") or "" for option in options)
    for key in ("selected_user", "selected_channel", "selected_conversation", "selected_date"):
        if key in element:
            return element.get(key) or ""
    return None


def extract_field_values(values: Mapping[str, Mapping[str, Mapping[str, Any]]]) -> Dict[str, str]:
    """Flatten Slack view state into ``block_id -> value``.

    Selectable widgets are also recorded as ``<block_id>_<element type>`` so a
    template can tell the chosen option apart from free text.
    """

    fields: Dict[str, str] = {}
    for block_id, elements in values.items():
        for element in elements.values():
            selected = _selected_value(element)
            if selected is None:
                fields[block_id] = element.get("value") or ""
                continue
            element_type = element.get("type") or "select"
            fields[f"{block_id}_{element_type}"] = selected
            fields[block_id] = selected
    return fields


def decode_interaction(envelope: EventEnvelope) -> InteractionCallback:
    """Decode an ``interactive`` envelope into an :class:`InteractionCallback`."""

    if envelope.kind != INTERACTIVE:
        raise EnvelopeDecodeError(f"Expected an {INTERACTIVE} envelope, got '{envelope.kind}'")
    try:
        raw = _RawInteraction.model_validate(dict(envelope.payload))
    except ValidationError as exc:
        raise EnvelopeDecodeError("Invalid interaction payload") from exc

    if raw.type in SHORTCUT_TYPES:
        return InteractionCallback(
            interaction_type=raw.type,
            flow_identifier=raw.callback_id,
            user_id=raw.user.id,
            trigger_id=raw.trigger_id,
        )

    view = raw.view or _CallbackView()
    return InteractionCallback(
        interaction_type=raw.type,
        flow_identifier=view.private_metadata,
        user_id=raw.user.id,
        view_id=view.id,
        view_hash=view.hash,
        trigger_id=raw.trigger_id,
        field_values=extract_field_values(view.state.values),
    )


def decode_event(envelope: EventEnvelope) -> EventCallback:
    """Decode an ``events_api`` envelope into its inner :class:`EventCallback`."""

    if envelope.kind != EVENTS_API:
        raise EnvelopeDecodeError(f"Expected an {EVENTS_API} envelope, got '{envelope.kind}'")
    event = envelope.payload.get("event")
    if not isinstance(event, Mapping):
        raise EnvelopeDecodeError("Events API payload has no event body")
    try:
        return EventCallback.model_validate({**event, "event_id": envelope.payload.get("event_id") or ""})
    except ValidationError as exc:
        raise EnvelopeDecodeError("Invalid event payload") from exc
