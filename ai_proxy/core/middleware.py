"""HTTP middleware for request correlation and access logging.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from ai_proxy.core.config import settings
from ai_proxy.core.exception_handlers import general_exception_handler
from ai_proxy.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

DURATION_HEADER = "X-Request-Duration-ms"

# Longest client-supplied request id echoed back; longer ones are replaced
MAX_REQUEST_ID_LENGTH = 128


def _resolve_request_id(request: Request, header_name: str) -> str:
    incoming = request.headers.get(header_name, "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return uuid.uuid4().hex


def _access_log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id to the request and log its outcome.

    The incoming ``X-Request-ID`` (header name from LOG_REQUEST_ID_HEADER) is
    reused when it is short and printable, otherwise a fresh id is generated.
    It is kept in a contextvar while the request is handled and echoed back
    with ``X-Request-Duration-ms``. Exactly one ``http.request`` line is
    logged per request: method, path, status and duration, never bodies.
    Unhandled exceptions are turned into the generic 500 envelope here, so
    that response also carries the request id.
    """
    header_name = settings.log.request_id_header
    request_id = _resolve_request_id(request, header_name)
    set_request_id(request_id)

    start = time.perf_counter()
    try:
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            # 500 envelope is built inside CORS while the request id is still set
            response = await general_exception_handler(request, exc)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.log(
            _access_log_level(response.status_code),
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers[DURATION_HEADER] = f"{duration_ms:.2f}"
    return response
