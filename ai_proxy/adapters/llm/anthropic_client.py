"""Anthropic Messages API client adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ai_proxy.adapters.llm.base import (
    AbstractLLMClient,
    upstream_bad_response_error,
    upstream_status_error,
    upstream_timeout_error,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
MESSAGES_PATH = "/v1/messages"


def _extract_text(payload: Any) -> str | None:
    """Return ``content[0].text`` from a Messages API reply, if present."""
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if not isinstance(content, list) or not content:
        return None
    first = content[0]
    if not isinstance(first, dict):
        return None
    text = first.get("text")
    return text if isinstance(text, str) and text else None


class AnthropicClient(AbstractLLMClient):
    """Calls the Anthropic Messages API over httpx.

    The model, token budget and API version are fixed at construction so a
    caller of the proxy cannot change them.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str | None = None,
        timeout_seconds: float = 25.0,
        max_tokens: int = 1500,
        anthropic_version: str = "2023-06-01",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            api_key: Anthropic API key.
            model: Model name sent with every request.
            base_url: Override for the API host.
            timeout_seconds: Timeout for one upstream call.
            max_tokens: Maximum tokens requested per reply.
            anthropic_version: Value of the anthropic-version header.
            transport: Optional httpx transport (used by tests).
        """
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.client = httpx.AsyncClient(
            base_url=base_url or DEFAULT_BASE_URL,
            timeout=timeout_seconds,
            transport=transport,
            headers={
                "content-type": "application/json",
                "x-api-key": api_key,
                "anthropic-version": anthropic_version,
            },
        )

    async def generate_text(
        self,
        system_prompt: str,
        user_message: str,
        **kwargs: Any,
    ) -> str:
        """Send one message to the model and return its text reply.

        Args:
            system_prompt: System prompt.
            user_message: User message.
            **kwargs: Optional ``temperature``.

        Returns:
            The text of the first content block.

        Raises:
            LLMTimeoutAppError: On connect/read/write/pool timeout.
            LLMAppError: On non-2xx status or a reply without text.
        """
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_message}],
        }
        if "temperature" in kwargs:
            body["temperature"] = kwargs["temperature"]

        try:
            response = await self.client.post(MESSAGES_PATH, json=body)
        except httpx.TimeoutException as exc:
            logger.error(
                "upstream.timeout",
                extra={"provider": "anthropic", "timeout_s": self.timeout_seconds},
            )
            raise upstream_timeout_error(self.timeout_seconds, provider="anthropic") from exc

        if response.is_error:
            try:
                error_body: Any = response.json()
            except ValueError:
                error_body = {}
            logger.error(
                "upstream.error",
                extra={
                    "provider": "anthropic",
                    "upstream_status": response.status_code,
                    "upstream_body": error_body,
                },
            )
            raise upstream_status_error(response.status_code, provider="anthropic")

        try:
            payload = response.json()
        except ValueError:
            payload = None

        text = _extract_text(payload)
        if text is None:
            logger.error(
                "upstream.unexpected_response",
                extra={"provider": "anthropic", "upstream_status": response.status_code},
            )
            raise upstream_bad_response_error(provider="anthropic")

        return text

    async def aclose(self) -> None:
        await self.client.aclose()
