"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiter into the HTTP layer.

- The limiter is an owned resource on ``app.state`` (built by the app
  factory), never a module global.
- The caller's identity is its originating address: the first entry of the
  forwarding header set by the edge proxy, else the socket peer, else a
  sentinel so every request is still counted.
- Every rate-limited response reports ``X-RateLimit-Remaining``; denied
  requests get 429 with ``Retry-After``.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, Response, status

from ai_proxy.adapters.rate_limit.base import AbstractRateLimiter
from ai_proxy.core.config import settings
from ai_proxy.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""

    return request.app.state.rate_limiter


def resolve_client_identity(request: Request) -> str:
    """Derive the rate limit identity for a request.

    Args:
        request: FastAPI request.

    Returns:
        The originating client address, or the configured sentinel.
    """

    forwarded = request.headers.get(settings.app.rate_limit_identity_header)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client and request.client.host:
        return request.client.host

    return settings.app.rate_limit_unknown_identity


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing the per-address request quota.

    Args:
        request: FastAPI request.
        response: Response whose headers receive the remaining quota.

    Raises:
        HTTPException: 429 Too Many Requests when the quota is exhausted.
    """

    if not settings.app.rate_limit_enabled:
        return

    limiter = get_rate_limiter(request)
    identity = resolve_client_identity(request)
    decision = limiter.check(identity)

    # error handlers copy this onto 4xx/5xx envelopes
    request.state.rate_limit_remaining = decision.remaining
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)

    if decision.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "identity_hash": hash_identifier(identity),
                "remaining": decision.remaining,
            },
        )
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identity_hash": hash_identifier(identity),
            "retry_after_s": decision.retry_after,
        },
    )

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=f"Rate limit exceeded. Try again in {decision.retry_after} seconds.",
        headers={
            "Retry-After": str(decision.retry_after),
            "X-RateLimit-Remaining": str(decision.remaining),
        },
    )
