"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit,
  and state is lost on restart.
- Windows are anchored at each identity's first request, not at clock
  boundaries. Like any fixed window, up to twice the quota can get through
  around the moment one window ends and the next begins.
- Thread-safe: one lock guards the whole store.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ai_proxy.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision


@dataclass
class _WindowRecord:
    window_start: float
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Counts requests per identity inside a fixed window of time.

    A window opens on an identity's first request and lasts
    ``window_seconds``. Every request inside it, admitted or not, increments
    the count; once the count passes ``max_requests`` the identity is denied
    until the window expires. The next request after expiry opens a fresh
    window.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_requests: Requests admitted per identity per window.
            window_seconds: Length of one window in seconds.
            clock: Time source returning seconds.

        Raises:
            ValueError: If max_requests or window_seconds are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, _WindowRecord] = {}

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _is_expired(self, record: _WindowRecord, now: float) -> bool:
        return now - record.window_start > self._window_seconds

    def _retry_after(self, record: _WindowRecord, now: float) -> int:
        elapsed = now - record.window_start
        # A window is still open at exactly elapsed == window_seconds
        return max(1, math.ceil(self._window_seconds - elapsed))

    def check(self, identity: str) -> RateLimitDecision:
        """Record a request for ``identity`` and return the admit/deny decision.

        Args:
            identity: Opaque caller key.

        Returns:
            RateLimitDecision with remaining quota, or the retry hint when denied.

        Raises:
            ValueError: If identity is empty.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        with self._lock:
            now = self._clock()
            record = self._records.get(identity)

            if record is None or self._is_expired(record, now):
                self._records[identity] = _WindowRecord(window_start=now, count=1)
                return RateLimitDecision(
                    allowed=True,
                    remaining=self._max_requests - 1,
                    retry_after=0,
                )

            record.count += 1

            if record.count > self._max_requests:
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    retry_after=self._retry_after(record, now),
                )

            return RateLimitDecision(
                allowed=True,
                remaining=self._max_requests - record.count,
                retry_after=0,
            )

    def sweep(self) -> int:
        """Remove every record whose window has expired.

        Open windows are never touched, so sweeping only bounds memory and
        has no effect on later decisions.

        Returns:
            Number of records removed.
        """
        with self._lock:
            now = self._clock()
            expired = [
                identity
                for identity, record in self._records.items()
                if self._is_expired(record, now)
            ]
            for identity in expired:
                del self._records[identity]
            return len(expired)
