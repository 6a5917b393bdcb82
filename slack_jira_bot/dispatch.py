"""The receive loop: acknowledge every envelope, then route it."""

from __future__ import annotations

import json
import queue
import threading
from concurrent.futures import Future
from typing import Any, Mapping, Protocol
from uuid import uuid4

import structlog
from slack_sdk.socket_mode import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse
from structlog.contextvars import bind_contextvars, unbind_contextvars

from slack_jira_bot.background import TaskRunner
from slack_jira_bot.envelopes import EVENTS_API, INTERACTIVE, EnvelopeDecodeError, EventEnvelope
from slack_jira_bot.events import EventRouter
from slack_jira_bot.handlers import UNHANDLED, HandlerResult
from slack_jira_bot.modals import InteractionRouter


class Transport(Protocol):
    def receive(self, timeout: float) -> EventEnvelope | None:
        ...

    def ack(self, envelope: EventEnvelope, payload: Mapping[str, Any] | None = None) -> None:
        ...


class SocketModeTransport:
    """Expose a Socket Mode connection as a queue of envelopes.

    The SDK delivers requests on its own threads; they are queued here so the
    dispatcher has a single receive point.
    """

    def __init__(self, client: SocketModeClient) -> None:
        self._client = client
        self._queue: "queue.Queue[EventEnvelope]" = queue.Queue()
        client.socket_mode_request_listeners.append(self._enqueue)

    def _enqueue(self, _client: SocketModeClient, request: SocketModeRequest) -> None:
        self._queue.put(
            EventEnvelope(
                kind=request.type,
                payload=request.payload or {},
                ack_token=request.envelope_id,
                retry_attempt=request.retry_attempt or 0,
            )
        )

    def connect(self) -> None:
        self._client.connect()

    def close(self) -> None:
        self._client.close()

    def receive(self, timeout: float) -> EventEnvelope | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def ack(self, envelope: EventEnvelope, payload: Mapping[str, Any] | None = None) -> None:
        response = SocketModeResponse(
            envelope_id=envelope.ack_token,
            payload=dict(payload) if payload is not None else None,
        )
        self._client.send_socket_mode_response(response)


class Dispatcher:
    """Pull envelopes one at a time, acknowledge them in order and route them.

    Events API envelopes are acknowledged immediately and handled on the task
    runner. Interaction envelopes run their follow-up chain inline, because the
    acknowledgement carries the chain's response; anything slow in the chain is
    scheduled on the runner by the handler itself.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        events: EventRouter,
        interactions: InteractionRouter,
        runner: TaskRunner,
        poll_interval: float = 1.0,
    ) -> None:
        self._transport = transport
        self._events = events
        self._interactions = interactions
        self._runner = runner
        self._poll_interval = poll_interval
        self._stopping = threading.Event()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def stop(self) -> None:
        self._stopping.set()

    def run(self) -> None:
        log = structlog.get_logger()
        log.info("dispatch_loop_started")
        while not self._stopping.is_set():
            envelope = self._transport.receive(timeout=self._poll_interval)
            if envelope is None:
                continue
            self.dispatch(envelope)
        log.info("dispatch_loop_stopped")

    def shutdown(self, *, grace_period: float) -> bool:
        """Stop receiving and give in-flight tasks *grace_period* seconds to finish."""

        self.stop()
        structlog.get_logger().info(
            "dispatch_shutdown",
            grace_period=grace_period,
            in_flight=self._runner.in_flight,
        )
        return self._runner.shutdown(grace_period=grace_period)

    def dispatch(self, envelope: EventEnvelope) -> Future | None:
        """Acknowledge and route one envelope, returning the handle of any scheduled task."""

        trace_id = str(uuid4())
        bind_contextvars(trace_id=trace_id)
        log = structlog.get_logger().bind(
            trace_id=trace_id,
            envelope_kind=envelope.kind,
            retry_attempt=envelope.retry_attempt,
        )
        try:
            if envelope.kind == EVENTS_API:
                self._ack(envelope, None, log)
                return self._runner.submit(self._route_event, envelope, log, trace_id=trace_id)
            if envelope.kind == INTERACTIVE:
                return self._dispatch_interaction(envelope, log)

            self._ack(envelope, None, log)
            log.debug("envelope_ignored")
            return None
        except Exception:
            log.exception("envelope_dispatch_failed")
            return None
        finally:
            unbind_contextvars("trace_id")

    def _dispatch_interaction(self, envelope: EventEnvelope, log: Any) -> Future | None:
        result: HandlerResult = UNHANDLED
        try:
            result = self._interactions.handle(envelope, log)
        except EnvelopeDecodeError as exc:
            log.error("interaction_decode_failed", error=str(exc))
        finally:
            self._ack(envelope, result.response_payload, log)

        if result.error is not None:
            log.error(
                "interaction_failed",
                error=str(result.error),
                error_type=type(result.error).__name__,
            )
        return result.task

    def _route_event(self, envelope: EventEnvelope, log: Any) -> HandlerResult | None:
        try:
            return self._events.route(envelope, log)
        except EnvelopeDecodeError as exc:
            log.error("event_decode_failed", error=str(exc))
            return None

    def _ack(self, envelope: EventEnvelope, payload: bytes | None, log: Any) -> None:
        body = json.loads(payload) if payload else None
        try:
            self._transport.ack(envelope, body)
        except Exception:
            log.exception("envelope_ack_failed")
            return
        log.debug("envelope_acked", with_payload=body is not None)
