"""Composable partial handlers shared by the event and interaction routers."""

from __future__ import annotations

import json
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, Protocol, Tuple, TypeVar

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class MarshalingError(Exception):
    """Raised when a response payload cannot be serialised."""


@dataclass(frozen=True)
class HandlerResult:
    """Outcome of offering an input to a partial handler.

    ``handled`` ends the chain even when ``error`` is set. ``task`` is the
    handle of work the handler scheduled to finish after acknowledgement.
    """

    handled: bool = False
    response_payload: bytes | None = None
    error: Exception | None = None
    task: Future | None = None


UNHANDLED = HandlerResult()


class PartialHandler(Protocol[T_contra]):
    """Anything that may claim an input and optionally produce a response."""

    name: str

    def handle(self, item: T_contra, logger: Any) -> HandlerResult:
        ...


@dataclass(frozen=True)
class PartialHandlerFunc(Generic[T]):
    """Adapt a plain function into a named partial handler."""

    name: str
    func: Callable[[T, Any], HandlerResult]

    def handle(self, item: T, logger: Any) -> HandlerResult:
        return self.func(item, logger)


def partial_from_handler(name: str, func: Callable[[T, Any], bytes | None]) -> PartialHandlerFunc[T]:
    """Lift a handler that always acts into a partial handler that always claims.

    Exceptions raised by *func* are carried on the claimed result.
    """

    def _handle(item: T, logger: Any) -> HandlerResult:
        try:
            payload = func(item, logger)
        except Exception as exc:
            return HandlerResult(handled=True, error=exc)
        return HandlerResult(handled=True, response_payload=payload)

    return PartialHandlerFunc(name=name, func=_handle)


class MultiHandler(Generic[T]):
    """Offer an input to each handler in order; the first to claim it wins."""

    def __init__(self, *handlers: PartialHandler[T]) -> None:
        self._handlers: Tuple[PartialHandler[T], ...] = tuple(handlers)

    @property
    def name(self) -> str:
        return "+".join(handler.name for handler in self._handlers)

    @property
    def handlers(self) -> Tuple[PartialHandler[T], ...]:
        return self._handlers

    def handle(self, item: T, logger: Any) -> HandlerResult:
        for handler in self._handlers:
            result = handler.handle(item, logger)
            if result.handled:
                return result
        return UNHANDLED


def marshal_response(payload: Mapping[str, Any]) -> bytes:
    """Serialise a response payload for the transport acknowledgement."""

    try:
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise MarshalingError(f"Failed to marshal response payload: {exc}") from exc
