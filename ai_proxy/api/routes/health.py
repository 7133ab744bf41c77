from __future__ import annotations

from fastapi import APIRouter

from ai_proxy.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness endpoint for load balancers and monitors.

    Not rate limited and not authenticated. Reports whether an upstream key
    is configured (never the key itself) so a misconfigured deployment is
    visible before the first user request fails.

    Returns:
        dict: ``status``, ``provider`` and ``upstream_configured``.
    """

    return {
        "status": "ok",
        "provider": settings.llm.provider.lower(),
        "upstream_configured": bool(settings.llm.api_key),
    }
