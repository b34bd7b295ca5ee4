"""
Daily request quota governor.

Counts billable answers per UTC calendar day. The day is recomputed from the
clock on every call, so the first call after midnight rolls the counter over.

Each public method holds the lock for its own read/modify step only. The gap
between ``check()`` and ``record()`` spans a backend round trip and is not
atomic: concurrent requests can be over-admitted by at most the number of
requests in flight when the limit is reached.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable

from .config import DAILY_QUOTA_LIMIT
from .observability import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class QuotaCheck:
    allowed: bool
    remaining: int
    limit: int


@dataclass(frozen=True)
class QuotaStatus:
    remaining: int
    limit: int
    used: int


class QuotaGovernor:
    """Thread-safe daily counter with day-boundary reset."""

    def __init__(self, limit: int = DAILY_QUOTA_LIMIT, clock: Clock | None = None):
        limit = int(limit)
        if limit <= 0:
            raise ValueError("quota limit must be a positive integer")
        self._limit = limit
        self._clock: Clock = clock or utc_now
        self._lock = threading.Lock()
        self._count = 0
        self._day = self._today()

    @property
    def limit(self) -> int:
        return self._limit

    def _today(self) -> date:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc).date()

    def _rollover(self) -> None:
        # Caller must hold self._lock.
        today = self._today()
        if today != self._day:
            logger.info(
                "quota_rollover",
                previous_day=self._day.isoformat(),
                day=today.isoformat(),
                previous_count=self._count,
            )
            self._day = today
            self._count = 0

    def _snapshot(self) -> QuotaStatus:
        return QuotaStatus(
            remaining=max(0, self._limit - self._count),
            limit=self._limit,
            used=self._count,
        )

    def check(self) -> QuotaCheck:
        with self._lock:
            self._rollover()
            if self._count >= self._limit:
                return QuotaCheck(allowed=False, remaining=0, limit=self._limit)
            return QuotaCheck(allowed=True, remaining=self._limit - self._count, limit=self._limit)

    def record(self) -> QuotaStatus:
        """Charges one successful answer against today's quota."""
        with self._lock:
            self._rollover()
            self._count += 1
            return self._snapshot()

    def status(self) -> QuotaStatus:
        with self._lock:
            self._rollover()
            return self._snapshot()
