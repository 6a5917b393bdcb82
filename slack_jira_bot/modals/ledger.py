"""Remember submissions so redelivered callbacks never file twice."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict

from slack_jira_bot.jira import TicketReference

PENDING = "PENDING"
FILED = "FILED"
FAILED = "FAILED"


@dataclass(frozen=True)
class SubmissionRecord:
    status: str
    recorded_at: float
    ticket: TicketReference | None = None
    error: str | None = None


class SubmissionLedger:
    """Thread-safe record of submissions keyed by submission identity.

    Entries are kept for *window* after their last update, which must be at
    least as long as the transport's redelivery horizon.
    """

    def __init__(
        self,
        *,
        window: timedelta = timedelta(hours=1),
        timer: Callable[[], float] | None = None,
    ) -> None:
        if window.total_seconds() <= 0:
            raise ValueError("Retention window must be greater than zero seconds.")

        self._window = window
        self._timer = timer or time.monotonic
        self._lock = threading.Lock()
        self._records: Dict[str, SubmissionRecord] = {}

    def _purge(self, now: float) -> None:
        threshold = self._window.total_seconds()
        expired = [key for key, record in self._records.items() if now - record.recorded_at >= threshold]
        for key in expired:
            del self._records[key]

    def claim(self, key: str) -> SubmissionRecord | None:
        """Reserve *key* for filing.

        Returns None when the caller now owns the submission and must file it.
        Otherwise returns the existing record and the caller must not file.
        """

        now = self._timer()
        with self._lock:
            self._purge(now)
            existing = self._records.get(key)
            if existing is not None:
                return existing
            self._records[key] = SubmissionRecord(status=PENDING, recorded_at=now)
            return None

    def complete(self, key: str, ticket: TicketReference) -> None:
        with self._lock:
            self._records[key] = SubmissionRecord(status=FILED, recorded_at=self._timer(), ticket=ticket)

    def fail(self, key: str, error: str) -> None:
        with self._lock:
            self._records[key] = SubmissionRecord(status=FAILED, recorded_at=self._timer(), error=error)

    def get(self, key: str) -> SubmissionRecord | None:
        with self._lock:
            self._purge(self._timer())
            return self._records.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
