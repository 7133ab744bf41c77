"""Rate limiting adapters.

A small abstraction layer: routes talk to ``AbstractRateLimiter`` while the
process-local store and its background sweeper live behind it.
"""

from ai_proxy.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from ai_proxy.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from ai_proxy.adapters.rate_limit.sweeper import ExpiredWindowSweeper

__all__ = [
    "AbstractRateLimiter",
    "ExpiredWindowSweeper",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitDecision",
]
