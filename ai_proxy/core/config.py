"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_llm_settings() -> "LLMSettings":
    """Build upstream provider settings from environment."""

    return LLMSettings()


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items.

    Examples:
        >>> parse_csv("Content-Type, X-API-Key")
        ['Content-Type', 'X-API-Key']
        >>> parse_csv(None)
        []
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class LLMSettings(BaseSettings):
    """Upstream AI provider configuration.

    The model is pinned here; clients of the proxy can never choose it.
    """

    provider: str = Field(
        "anthropic",
        description="Upstream provider name (anthropic or openai)",
    )
    model: str = Field(
        "claude-3-5-haiku-20241022",
        description="The only model the proxy will request upstream",
    )
    api_key: str | None = Field(
        None,
        description="Provider API key; stays server-side and is never logged",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (defaults to the provider's public URL)",
    )
    timeout_seconds: float = Field(
        25.0,
        description="Upstream request timeout in seconds",
        gt=0,
    )
    max_tokens: int = Field(
        1500,
        description="Maximum tokens requested from the upstream model",
        ge=1,
    )
    anthropic_version: str = Field(
        "2023-06-01",
        description="Value of the anthropic-version header",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    max_system_prompt_chars: int = Field(
        4000,
        description="Maximum systemPrompt length in characters",
        ge=1,
    )
    max_user_message_chars: int = Field(
        4000,
        description="Maximum userMessage length in characters",
        ge=1,
    )
    api_key_required: bool = Field(
        False,
        description="Whether callers must present an X-API-Key",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid client API keys",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-address rate limiting",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of requests allowed per window (per client address)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_sweep_enabled: bool = Field(
        True,
        description="Periodically drop expired rate limit windows from memory",
    )
    rate_limit_identity_header: str = Field(
        "x-forwarded-for",
        description="Header carrying the originating client address (first entry is used)",
    )
    rate_limit_unknown_identity: str = Field(
        "unknown",
        description="Identity used when no client address can be determined",
        min_length=1,
    )

    cors_allow_origins: str = Field(
        "*",
        description="Comma-separated list of allowed CORS origins",
    )
    cors_allow_headers: str = Field(
        "Content-Type,X-API-Key",
        description="Comma-separated list of allowed CORS request headers",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate log file at this size (0 disables rotation)")
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and return the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
