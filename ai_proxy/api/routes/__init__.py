from __future__ import annotations

from ai_proxy.api.routes.completion import router as completion_router
from ai_proxy.api.routes.health import router as health_router

__all__ = ["completion_router", "health_router"]
