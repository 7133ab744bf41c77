"""Pytest configuration shared across all test modules.

Environment variables must be in place before anything imports
``ai_proxy.core.config``, which builds the global settings at import time.
"""

import os

os.environ["APP_ENV"] = "testing"

os.environ.setdefault("LLM_PROVIDER", "anthropic")
os.environ.setdefault("LLM_MODEL", "claude-3-5-haiku-20241022")
os.environ.setdefault("LLM_API_KEY", "test-upstream-key")
os.environ.setdefault("APP_API_KEY_REQUIRED", "false")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "10")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_SECONDS", "60")
os.environ.setdefault("LOG_LEVEL", "WARNING")
