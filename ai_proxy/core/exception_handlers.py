"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses -> mapped HTTP status (400, 403, 500, 502, 504)
- Request body schema errors -> 400 with the same envelope
- Unexpected Exception -> generic 500 (safety net)
- All responses include request_id for tracing
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ai_proxy.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    LLMAppError,
    LLMTimeoutAppError,
)
from ai_proxy.core.logging import get_request_id

logger = logging.getLogger(__name__)


def status_code_for(exc: AppError) -> int:
    """Return the HTTP status code for an application error.

    Args:
        exc: AppError instance (or subclass).

    Returns:
        400 for validation, 403 for auth, 500 for configuration,
        504 for upstream timeouts and 502 for other upstream failures.
    """
    if isinstance(exc, AuthenticationAppError):
        return 403
    if isinstance(exc, ConfigurationAppError):
        return 500
    if isinstance(exc, LLMTimeoutAppError):
        return 504
    if isinstance(exc, LLMAppError):
        return 502
    return 400


def _error_response(request: Request, status_code: int, error_content: dict) -> JSONResponse:
    headers = None
    remaining = getattr(request.state, "rate_limit_remaining", None)
    if remaining is not None:
        headers = {"X-RateLimit-Remaining": str(remaining)}
    return JSONResponse(
        status_code=status_code, content={"error": error_content}, headers=headers
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context (never for configuration errors)

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "error_details": exc.details,
            "request_path": request.url.path,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    # configuration details stay in the server log
    if exc.details and not isinstance(exc, ConfigurationAppError):
        error_content["details"] = exc.details

    return _error_response(request, status_code, error_content)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map FastAPI body/query validation failures to a 400 envelope.

    Only the location and type of each failure are returned; submitted
    values are never echoed back.
    """
    errors = [
        {"loc": list(err.get("loc", ())), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger.warning(
        "request_validation_failed",
        extra={"error_count": len(errors), "request_path": request.url.path},
    )
    return _error_response(
        request,
        400,
        {
            "code": "invalid_request",
            "message": "Request body must be a JSON object with string fields systemPrompt and userMessage.",
            "request_id": get_request_id(),
            "details": {"errors": errors},
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the real error while returning a generic message. No stack traces
    or upstream payloads reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return _error_response(
        request,
        500,
        {
            "code": "internal_server_error",
            "message": "An unexpected error occurred. Please try again.",
            "request_id": get_request_id(),
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with a FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
