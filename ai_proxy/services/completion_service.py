"""Completion service: validates input and forwards it upstream.

This is the business logic behind the proxy endpoint. It handles:
- Input validation (presence, type, length) with client-safe messages
- Lazy construction of the upstream client, so a missing provider key is
  reported per request instead of failing at import time
- The upstream call itself, with errors normalized by the adapters
- Returning only the reply text
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from ai_proxy.adapters.llm.base import AbstractLLMClient
from ai_proxy.adapters.llm.factory import create_llm_client
from ai_proxy.core.config import settings
from ai_proxy.core.errors import ValidationAppError
from ai_proxy.schemas.completion import CompletionRequest, CompletionResponse

logger = logging.getLogger(__name__)


def _validate_field(value: Any, *, field: str, max_chars: int) -> str:
    """Check that a prompt field is a non-empty string within the length limit.

    Args:
        value: Submitted value.
        field: Client-facing field name (camelCase, as sent).
        max_chars: Maximum allowed character count.

    Returns:
        The validated string.

    Raises:
        ValidationAppError: If the value is missing, not a string, or too long.
    """
    snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in field)

    if not value or not isinstance(value, str):
        raise ValidationAppError(
            code=f"{snake}_required",
            message=f"{field} is required and must be a string.",
            details={"field": field},
        )

    if len(value) > max_chars:
        raise ValidationAppError(
            code=f"{snake}_too_long",
            message=f"{field} exceeds maximum length of {max_chars} characters.",
            details={"field": field, "max_chars": max_chars, "actual_chars": len(value)},
        )

    return value


class CompletionService:
    """Forwards validated prompt pairs to the configured upstream provider.

    Attributes:
        client_factory: Builds the upstream client on first use.
    """

    def __init__(
        self,
        llm: AbstractLLMClient | None = None,
        *,
        client_factory: Callable[[], AbstractLLMClient] = create_llm_client,
    ) -> None:
        """Initialize the service.

        Args:
            llm: Ready-made client; when omitted one is built lazily.
            client_factory: Used to build the client when ``llm`` is None.
        """
        self._llm = llm
        self.client_factory = client_factory

    def _get_client(self) -> AbstractLLMClient:
        if self._llm is None:
            self._llm = self.client_factory()
        return self._llm

    def validate(self, request: CompletionRequest) -> tuple[str, str]:
        """Validate the request fields in client order.

        Returns:
            Tuple of (system_prompt, user_message).

        Raises:
            ValidationAppError: On the first invalid field.
        """
        system_prompt = _validate_field(
            request.system_prompt,
            field="systemPrompt",
            max_chars=settings.app.max_system_prompt_chars,
        )
        user_message = _validate_field(
            request.user_message,
            field="userMessage",
            max_chars=settings.app.max_user_message_chars,
        )
        return system_prompt, user_message

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Validate, call upstream, and return only the reply text.

        Raises:
            ValidationAppError: If the input is invalid.
            ConfigurationAppError: If the upstream client cannot be built.
            LLMAppError: If the upstream call fails (LLMTimeoutAppError on timeout).
        """
        system_prompt, user_message = self.validate(request)
        client = self._get_client()

        start = time.perf_counter()
        text = await client.generate_text(system_prompt, user_message)
        duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "completion.success",
            extra={
                "system_prompt_chars": len(system_prompt),
                "user_message_chars": len(user_message),
                "reply_chars": len(text),
                "upstream_ms": round(duration_ms, 2),
            },
        )
        return CompletionResponse(text=text)

    async def aclose(self) -> None:
        """Close the upstream client if one was built."""
        if self._llm is not None:
            await self._llm.aclose()
