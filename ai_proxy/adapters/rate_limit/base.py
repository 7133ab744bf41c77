"""Rate limiter interfaces.

The HTTP layer depends on this abstraction, not on the in-memory store, so
the store can be replaced without touching routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window (0 when denied).
        retry_after: Seconds until the window ends when denied, 0 when allowed.
    """

    allowed: bool
    remaining: int
    retry_after: int


class AbstractRateLimiter(ABC):
    """Interface for per-identity rate limiters."""

    @abstractmethod
    def check(self, identity: str) -> RateLimitDecision:
        """Record one request for ``identity`` and decide whether to admit it.

        Args:
            identity: Opaque, non-empty caller key (e.g. a network address).

        Returns:
            RateLimitDecision for this request.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop state that can no longer affect any decision.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError
