"""
Concurrency and quota governor for outbound model calls.

One instance is built per process and shared by every request handler. It
owns two pieces of in-memory state: the per-caller daily quota records and
the pool of concurrency permits. Neither survives a restart.
"""

import asyncio
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Deque, Dict, Optional, TypeVar

from taskpilot.domain.errors import AIQuotaExceededError, AIRateLimitedError
from taskpilot.infra.config.logging_config import get_logger

T = TypeVar("T")

RATE_WINDOW = timedelta(seconds=60)


@dataclass
class QuotaRecord:
    count_today: int
    window_start: datetime


def _normalize(caller_id: Optional[str]) -> Optional[str]:
    if caller_id is None:
        return None
    key = caller_id.strip().lower()
    return key or None


class CallGovernor:
    """Bounds in-flight provider calls and meters each caller's usage."""

    def __init__(
        self,
        daily_limit: int = 100,
        max_concurrent: int = 5,
        per_minute_limit: int = 0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if daily_limit < 1:
            raise ValueError("daily_limit must be at least 1")
        self.daily_limit = daily_limit
        self.max_concurrent = max_concurrent
        self.per_minute_limit = per_minute_limit
        self._clock = clock
        self._records: Dict[str, QuotaRecord] = {}
        self._recent_calls: Dict[str, Deque[datetime]] = {}
        self._lock = threading.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._in_flight = 0
        self._log = get_logger("ai.governor")

    @property
    def in_flight(self) -> int:
        """Number of permits currently held."""
        return self._in_flight

    def _day_start(self, now: datetime) -> datetime:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)

    def check_quota(self, caller_id: Optional[str]) -> None:
        """Charge one call to the caller's daily budget or raise.

        Calls without a caller are unmetered. A record from before today's
        local midnight counts as absent.
        """
        key = _normalize(caller_id)
        if key is None:
            return

        now = self._clock()
        day_start = self._day_start(now)
        with self._lock:
            record = self._records.get(key)
            if record is None or record.window_start < day_start:
                self._records[key] = QuotaRecord(count_today=1, window_start=now)
                return

            if record.count_today >= self.daily_limit:
                reset_at = day_start + timedelta(days=1)
                self._log.warning(
                    "ai.quota.exceeded", caller_id=key, limit=self.daily_limit
                )
                raise AIQuotaExceededError(
                    f"Daily AI call limit reached ({self.daily_limit})",
                    details={
                        "limit": self.daily_limit,
                        "used": record.count_today,
                        "reset_at": reset_at.isoformat(),
                        "retry_after_seconds": max(
                            1, int((reset_at - now).total_seconds())
                        ),
                    },
                )
            record.count_today += 1

    def check_rate(self, caller_id: Optional[str]) -> None:
        """Enforce the short sliding-window limit, when one is configured."""
        key = _normalize(caller_id)
        if key is None or self.per_minute_limit <= 0:
            return

        now = self._clock()
        with self._lock:
            window = self._recent_calls.setdefault(key, deque())
            while window and now - window[0] >= RATE_WINDOW:
                window.popleft()
            if len(window) >= self.per_minute_limit:
                retry_after = RATE_WINDOW - (now - window[0])
                raise AIRateLimitedError(
                    "Too many AI requests, please slow down",
                    details={
                        "limit": self.per_minute_limit,
                        "window_seconds": int(RATE_WINDOW.total_seconds()),
                        "retry_after_seconds": max(
                            1, int(retry_after.total_seconds())
                        ),
                    },
                )
            window.append(now)

    def usage(self, caller_id: Optional[str]) -> int:
        """Calls charged to the caller today."""
        key = _normalize(caller_id)
        if key is None:
            return 0
        day_start = self._day_start(self._clock())
        with self._lock:
            record = self._records.get(key)
            if record is None or record.window_start < day_start:
                return 0
            return record.count_today

    async def with_slot(self, call: Callable[[], Awaitable[T]]) -> T:
        """Run ``call`` while holding one concurrency permit.

        Waits (never fails) until a permit is free; the permit is released
        whatever the outcome.
        """
        async with self._semaphore:
            self._in_flight += 1
            try:
                return await call()
            finally:
                self._in_flight -= 1

    def reset(self) -> None:
        """Forget every quota and rate record."""
        with self._lock:
            self._records.clear()
            self._recent_calls.clear()
