"""LLM adapter layer - abstracts over upstream AI providers."""

from ai_proxy.adapters.llm.anthropic_client import AnthropicClient
from ai_proxy.adapters.llm.base import AbstractLLMClient
from ai_proxy.adapters.llm.factory import create_llm_client
from ai_proxy.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "AnthropicClient",
    "OpenAIClient",
    "create_llm_client",
]
