"""Optional client API key gate.

The proxy is anonymous by default. Deployments that want to restrict who may
spend the upstream quota can set APP_API_KEY_REQUIRED=true and list accepted
keys in APP_API_KEYS (comma-separated). These client keys are unrelated to
the upstream provider key.

Failures raise AuthenticationAppError, so a rejected caller gets the same
403 error envelope (with request_id) as every other handled error.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header

from ai_proxy.core.config import parse_csv, settings
from ai_proxy.core.errors import AuthenticationAppError
from ai_proxy.core.logging import hash_identifier

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> sorted(parse_api_keys("key1, key2 , key1"))
        ['key1', 'key2']
        >>> parse_api_keys(None)
        set()
    """
    return set(parse_csv(keys_string))


def _matches_any(provided_key: str, valid_keys: set[str]) -> bool:
    provided = provided_key.encode()
    # no early exit; every configured key is compared
    matched = False
    for key in valid_keys:
        matched |= hmac.compare_digest(provided, key.encode())
    return matched


def validate_api_key(provided_key: str | None) -> None:
    """Check a client key against APP_API_KEYS.

    A no-op while APP_API_KEY_REQUIRED is false.

    Raises:
        AuthenticationAppError: ``missing_api_key`` when no key was sent,
            ``api_keys_not_configured`` when auth is on but the key list is
            empty, ``invalid_api_key`` when the key does not match.
    """
    if not settings.app.api_key_required:
        return

    if not provided_key:
        logger.warning("auth.missing_key")
        raise AuthenticationAppError(
            code="missing_api_key",
            message=f"Missing API key. Provide {API_KEY_HEADER} header.",
        )

    valid_keys = parse_api_keys(settings.app.api_keys)
    if not valid_keys:
        logger.error("auth.keys_not_configured")
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    key_hash = hash_identifier(provided_key)
    if not _matches_any(provided_key, valid_keys):
        logger.warning("auth.invalid_key", extra={"key_hash": key_hash})
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )

    logger.debug("auth.success", extra={"key_hash": key_hash})


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias=API_KEY_HEADER)] = None,
) -> None:
    """FastAPI dependency enforcing the client API key when enabled.

    Usage:
        @router.post("/completion", dependencies=[Depends(verify_api_key)])
    """
    validate_api_key(x_api_key)
