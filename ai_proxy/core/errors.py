"""Application-level exception types.

Every failure the proxy reports to a client is one of these. The global
exception handlers map each class to an HTTP status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    field: str
    max_chars: int
    actual_chars: int
    hint: str
    provider: str
    upstream_status: int
    timeout_seconds: float
    errors: list[dict[str, Any]]
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message, safe to show to clients.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when the request payload is invalid."""


class AuthenticationAppError(AppError):
    """Raised when client authentication fails."""


class ConfigurationAppError(AppError):
    """Raised when the server is missing configuration it needs."""


class LLMAppError(AppError):
    """Raised when the upstream provider fails or answers unexpectedly."""


class LLMTimeoutAppError(LLMAppError):
    """Raised when the upstream provider does not answer in time."""
