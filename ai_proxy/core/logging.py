"""Logging setup: JSON lines, request correlation and redaction.

The proxy handles two kinds of data that must never reach the logs: the
upstream provider key and the prompts users send. Both are handled here,
once, for every handler:

- fields whose *name* is sensitive (``api_key``, ``system_prompt``, ...) are
  replaced with ``[REDACTED]``, also inside nested dicts and lists;
- string *values* that look like provider keys (``sk-...``) are masked, since
  upstream error bodies are logged and may quote the key back;
- client identifiers are logged as a truncated SHA-256 (``hash_identifier``).

The current request id lives in a contextvar set by the HTTP middleware and
is attached to every record emitted while the request is being handled.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from ai_proxy.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        # credentials
        "api_key",
        "x-api-key",
        "llm_api_key",
        "app_api_keys",
        "authorization",
        "cookie",
        "set-cookie",
        "secret",
        "token",
        # user content
        "system_prompt",
        "systemprompt",
        "user_message",
        "usermessage",
        "prompt",
        "messages",
        "text",
    }
)

# Provider key shapes (Anthropic "sk-ant-...", OpenAI "sk-..."/"sk-proj-...")
_SECRET_VALUE_RE = re.compile(r"\bsk-[A-Za-z0-9_\-]{6,}")

# Attributes every LogRecord has; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "request_id"}

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_identifier(value: str) -> str:
    """Return a short, stable digest of a client identifier.

    Lets log lines for the same caller be correlated without recording the
    address or key itself.

    Examples:
        >>> len(hash_identifier("1.2.3.4"))
        16
    """
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def mask_secrets(text: str) -> str:
    """Mask anything shaped like a provider key inside free text.

    Examples:
        >>> mask_secrets("bad key sk-ant-abc123456")
        'bad key [REDACTED]'
    """
    return _SECRET_VALUE_RE.sub(REDACTED, text)


def redact(value: Any, sensitive_keys: Iterable[str] = SENSITIVE_KEYS_DEFAULT) -> Any:
    """Return ``value`` with sensitive keys and key-shaped strings replaced.

    Mappings are walked by key name (case-insensitive); lists and tuples are
    walked element-wise; strings are scanned for provider keys.
    """
    keys = sensitive_keys if isinstance(sensitive_keys, (set, frozenset)) else set(sensitive_keys)

    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in keys else redact(v, keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v, keys) for v in value)
    if isinstance(value, str):
        return mask_secrets(value)
    return value


def _iter_extras(record: LogRecord) -> Iterator[tuple[str, Any]]:
    for key, value in record.__dict__.items():
        if key in _RESERVED_ATTRS or key.startswith("_"):
            continue
        yield key, value


class RequestIdFilter(logging.Filter):
    """Attach the contextvar request id to records that lack one."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact extras and the rendered message before any handler formats them.

    Installed on the handler, so plain-text output is covered as well as JSON.
    """

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(
            k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        )

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in list(_iter_extras(record)):
            if key.lower() in self.sensitive_keys:
                setattr(record, key, REDACTED)
            else:
                setattr(record, key, redact(value, self.sensitive_keys))

        if isinstance(record.msg, str):
            record.msg = mask_secrets(record.msg)
        if record.args:
            record.args = redact(record.args, self.sensitive_keys)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, extras."""

    def __init__(self, *, ensure_ascii: bool = True) -> None:
        super().__init__()
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(_iter_extras(record))

        if record.exc_info:
            payload["exc_info"] = mask_secrets(self.formatException(record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    path = Path(log_settings.file_path or "logs/ai_proxy.log")
    path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single redacting handler on the root logger.

    Args:
        log_settings: Defaults to ``settings.log``.
    """
    cfg = log_settings or settings.log
    level = getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
