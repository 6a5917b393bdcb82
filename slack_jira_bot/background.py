"""Utilities for running background tasks."""

from __future__ import annotations

import threading
from contextvars import copy_context
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Set

import structlog
from structlog.contextvars import bind_contextvars, get_contextvars


class TaskRunner:
    """Run work off the dispatch loop on a shared thread pool.

    Every submitted callable gets the caller's context variables (including the
    bound ``trace_id``) and is tracked until it finishes, so :meth:`shutdown`
    can give in-flight work a bounded grace period.
    """

    def __init__(self, *, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="bot-task")
        self._lock = threading.Lock()
        self._in_flight: Set[Future] = set()

    def submit(
        self,
        func: Callable[..., Any],
        /,
        *args: Any,
        trace_id: str | None = None,
        **kwargs: Any,
    ) -> Future:
        """Submit *func* to the pool and return a Future acting as the task handle."""

        context = copy_context()
        if trace_id is not None and context.run(lambda: get_contextvars().get("trace_id")) != trace_id:
            context.run(lambda: bind_contextvars(trace_id=trace_id))

        def runner() -> Any:
            return context.run(func, *args, **kwargs)

        future = self._executor.submit(runner)
        with self._lock:
            self._in_flight.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._in_flight.discard(future)

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def shutdown(self, *, grace_period: float) -> bool:
        """Wait up to *grace_period* seconds for outstanding tasks.

        Tasks that have not started when the grace period ends are cancelled and
        never run; tasks already running are left to finish their current call.
        Pool workers are not daemon threads, so the interpreter still waits for
        those calls on exit; each is bounded by its own client timeout.
        Returns True when every task completed within the grace period.
        """

        log = structlog.get_logger()
        with self._lock:
            pending = set(self._in_flight)
        _, not_done = wait(pending, timeout=grace_period)
        cancelled = sum(1 for future in not_done if future.cancel())
        self._executor.shutdown(wait=False, cancel_futures=True)
        if not_done:
            log.warning(
                "tasks_abandoned",
                cancelled=cancelled,
                still_running=len(not_done) - cancelled,
            )
            return False
        log.info("tasks_drained", completed=len(pending))
        return True
