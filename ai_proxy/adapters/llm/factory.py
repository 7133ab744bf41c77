"""Factory pattern for creating upstream LLM client instances."""

import logging

from ai_proxy.adapters.llm.anthropic_client import AnthropicClient
from ai_proxy.adapters.llm.base import AbstractLLMClient
from ai_proxy.adapters.llm.openai_client import OpenAIClient
from ai_proxy.core.config import LLMSettings, settings
from ai_proxy.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("anthropic", "openai")
CONFIGURATION_ERROR_MESSAGE = "Server configuration error."


def create_llm_client(llm_settings: LLMSettings | None = None) -> AbstractLLMClient:
    """Instantiate the upstream client for the configured provider.

    Args:
        llm_settings: Provider settings; defaults to the global settings.

    Returns:
        AbstractLLMClient: Configured client instance.

    Raises:
        ConfigurationAppError: If the API key is missing or the provider is unknown.
    """
    cfg = llm_settings or settings.llm
    provider = cfg.provider.lower()

    if provider not in SUPPORTED_PROVIDERS:
        logger.error(
            "llm.unknown_provider",
            extra={"provider": provider, "supported": list(SUPPORTED_PROVIDERS)},
        )
        raise ConfigurationAppError(
            code="llm_unknown_provider",
            message=CONFIGURATION_ERROR_MESSAGE,
        )

    # Fail with a clear server-side message rather than a cryptic upstream 401
    if not cfg.api_key:
        logger.error(
            "llm.missing_api_key",
            extra={"provider": provider, "hint": "Set the LLM_API_KEY environment variable"},
        )
        raise ConfigurationAppError(
            code="llm_missing_api_key",
            message=CONFIGURATION_ERROR_MESSAGE,
        )

    if provider == "anthropic":
        return AnthropicClient(
            api_key=cfg.api_key,
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
            max_tokens=cfg.max_tokens,
            anthropic_version=cfg.anthropic_version,
        )

    return OpenAIClient(
        api_key=cfg.api_key,
        model=cfg.model,
        base_url=cfg.base_url,
        timeout_seconds=cfg.timeout_seconds,
        max_tokens=cfg.max_tokens,
    )
