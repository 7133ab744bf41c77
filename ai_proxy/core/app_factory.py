"""Application factory for the FastAPI app.

Builds the app together with the resources it owns: the rate limiter, its
background sweeper and the completion service. They live on ``app.state``;
the lifespan starts the sweeper and closes upstream connections on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ai_proxy.adapters.rate_limit import (
    AbstractRateLimiter,
    ExpiredWindowSweeper,
    InMemoryFixedWindowRateLimiter,
)
from ai_proxy.api.routes import completion_router, health_router
from ai_proxy.core.config import parse_csv, settings
from ai_proxy.core.exception_handlers import setup_exception_handlers
from ai_proxy.core.logging import configure_logging
from ai_proxy.core.middleware import request_id_middleware
from ai_proxy.core.openapi import apply_openapi_customizations
from ai_proxy.services.completion_service import CompletionService

logger = logging.getLogger(__name__)


def build_rate_limiter() -> InMemoryFixedWindowRateLimiter:
    """Create the process-local limiter from settings."""
    return InMemoryFixedWindowRateLimiter(
        max_requests=settings.app.rate_limit_requests,
        window_seconds=settings.app.rate_limit_window_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    limiter: AbstractRateLimiter = app.state.rate_limiter
    sweeper: ExpiredWindowSweeper | None = None

    if settings.app.rate_limit_enabled and settings.app.rate_limit_sweep_enabled:
        sweeper = ExpiredWindowSweeper(
            limiter,
            interval_seconds=settings.app.rate_limit_window_seconds,
        )
        sweeper.start()
    app.state.rate_limit_sweeper = sweeper

    logger.info(
        "app.startup",
        extra={
            "provider": settings.llm.provider,
            "model": settings.llm.model,
            "rate_limit_requests": settings.app.rate_limit_requests,
            "rate_limit_window_s": settings.app.rate_limit_window_seconds,
        },
    )
    try:
        yield
    finally:
        if sweeper is not None:
            await sweeper.stop()
        await app.state.completion_service.aclose()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with state, middleware, handlers and routers.
    """
    configure_logging(settings.log)

    app = FastAPI(
        title="AI Proxy API",
        description=(
            "Server-side proxy for a third-party AI API. Keeps the provider key "
            "on the server, pins the model, validates input, limits requests per "
            "client address and normalizes upstream errors and timeouts."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Owned resources; available even when the lifespan is not run (tests)
    app.state.rate_limiter = build_rate_limiter()
    app.state.completion_service = CompletionService()
    app.state.rate_limit_sweeper = None

    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_csv(settings.app.cors_allow_origins),
        allow_methods=["POST", "OPTIONS"],
        allow_headers=parse_csv(settings.app.cors_allow_headers),
        expose_headers=["X-RateLimit-Remaining", "Retry-After", settings.log.request_id_header],
    )

    setup_exception_handlers(app)

    app.include_router(completion_router, prefix="/api")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
