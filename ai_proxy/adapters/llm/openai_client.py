"""OpenAI LLM client adapter."""

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from ai_proxy.adapters.llm.base import (
    AbstractLLMClient,
    upstream_bad_response_error,
    upstream_status_error,
    upstream_timeout_error,
)

logger = logging.getLogger(__name__)


class OpenAIClient(AbstractLLMClient):
    """Client for OpenAI chat completions returning plain text.

    Uses the official OpenAI Python SDK with async support. SDK retries are
    disabled so the configured timeout bounds the whole call.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 25.0,
        max_tokens: int = 1500,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: OpenAI API key for authentication.
            model: Model name (e.g., "gpt-4o-mini").
            base_url: Optional custom base URL for OpenAI API.
            timeout_seconds: Timeout for requests in seconds.
            max_tokens: Maximum tokens requested per reply.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def generate_text(
        self,
        system_prompt: str,
        user_message: str,
        **kwargs: Any,
    ) -> str:
        """Generate a reply using OpenAI chat completions.

        Args:
            system_prompt: Sent as the system message.
            user_message: Sent as the user message.
            **kwargs: Optional ``temperature``, ``top_p`` or ``seed``.

        Returns:
            str: The first choice's message content.

        Raises:
            LLMTimeoutAppError: If the SDK times out.
            LLMAppError: On an API status error or an empty reply.
        """
        request_params: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
        }

        for param in ("temperature", "top_p", "seed"):
            if param in kwargs:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
        except openai.APITimeoutError as exc:
            logger.error(
                "upstream.timeout",
                extra={"provider": "openai", "timeout_s": self.timeout_seconds},
            )
            raise upstream_timeout_error(self.timeout_seconds, provider="openai") from exc
        except openai.APIStatusError as exc:
            logger.error(
                "upstream.error",
                extra={
                    "provider": "openai",
                    "upstream_status": exc.status_code,
                    "upstream_body": exc.body,
                },
            )
            raise upstream_status_error(exc.status_code, provider="openai") from exc

        content = None
        if response.choices:
            content = response.choices[0].message.content

        if not content:
            logger.error("upstream.unexpected_response", extra={"provider": "openai"})
            raise upstream_bad_response_error(provider="openai")

        return content

    async def aclose(self) -> None:
        await self.client.close()
