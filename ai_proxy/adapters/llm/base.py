from abc import ABC, abstractmethod
from typing import Any

from ai_proxy.core.errors import LLMAppError, LLMTimeoutAppError

# Client-facing messages; upstream error bodies are only ever logged
BUSY_MESSAGE = "The AI service is temporarily busy. Please try again in a moment."
ERROR_MESSAGE = "The AI service returned an error. Please try again."
BAD_RESPONSE_MESSAGE = "Unexpected response from AI service."
TIMEOUT_MESSAGE = "Request timed out. Please try again."


def upstream_status_error(status_code: int, *, provider: str) -> LLMAppError:
	"""Build the client-safe error for a non-2xx upstream status."""
	code, message = ("upstream_busy", BUSY_MESSAGE) if status_code == 429 else ("upstream_error", ERROR_MESSAGE)
	return LLMAppError(
		code=code,
		message=message,
		details={"provider": provider, "upstream_status": status_code},
	)


def upstream_timeout_error(timeout_seconds: float, *, provider: str) -> LLMTimeoutAppError:
	return LLMTimeoutAppError(
		code="upstream_timeout",
		message=TIMEOUT_MESSAGE,
		details={"provider": provider, "timeout_seconds": timeout_seconds},
	)


def upstream_bad_response_error(*, provider: str) -> LLMAppError:
	return LLMAppError(
		code="upstream_bad_response",
		message=BAD_RESPONSE_MESSAGE,
		details={"provider": provider},
	)


class AbstractLLMClient(ABC):
	"""Interface for upstream clients that turn a prompt pair into text."""

	@abstractmethod
	async def generate_text(
		self,
		system_prompt: str,
		user_message: str,
		**kwargs: Any,
	) -> str:
		"""Send one system + user message exchange and return the reply text.

		Args:
			system_prompt: Instructions for the model.
			user_message: The end user's message.
			**kwargs: Provider-specific options (e.g., temperature).

		Returns:
			str: Text of the model's first reply block.

		Raises:
			LLMTimeoutAppError: If the provider does not answer in time.
			LLMAppError: If the provider returns an error or an unexpected payload.
		"""
		...

	async def aclose(self) -> None:
		"""Release network resources held by the client."""
		return None
