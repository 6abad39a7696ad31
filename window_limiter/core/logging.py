"""Logging setup for the limiter.

Log messages are event names (``rate_limit.denied``, ``store.connected``)
with structured ``extra`` fields, rendered as one JSON object per line.

A single handler filter prepares every record:
- a raw ``identifier`` field is replaced by its ``key_hash``
- credential-like fields (store URLs, API keys) become ``[REDACTED]``,
  nested mappings included
- the request id from the current context is attached
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from window_limiter.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "api_key",
        "x-api-key",
        "authorization",
        "password",
        "secret",
        "token",
        "url",
        "store_url",
        "redis_url",
    }
)

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_identifier(identifier: str) -> str:
    """Return a short, stable digest of an identifier for log correlation.

    Args:
        identifier: Rate limit identifier (API key, IP, user id).

    Returns:
        First 16 hex characters of the SHA-256 digest.
    """

    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")}


class LimiterLogFilter(logging.Filter):
    """Hash identifiers, redact credentials and attach the request id."""

    def __init__(self, credential_keys: Iterable[str] = CREDENTIAL_KEYS) -> None:
        super().__init__()
        self.credential_keys = frozenset(k.lower() for k in credential_keys)

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {
                k: REDACTED if str(k).lower() in self.credential_keys else self._scrub(v)
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple)):
            return type(value)(self._scrub(v) for v in value)
        return value

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        identifier = getattr(record, "identifier", None)
        if identifier is not None:
            record.key_hash = hash_identifier(str(identifier))
            del record.identifier

        for key, value in _record_extras(record).items():
            if key.lower() in self.credential_keys:
                setattr(record, key, REDACTED)
            elif isinstance(value, (Mapping, list, tuple)):
                setattr(record, key, self._scrub(value))

        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class JsonFormatter(logging.Formatter):
    """Render a record and its extras as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__
        return json.dumps(payload, default=str)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    path = Path(log_settings.file_path or "logs/window_limiter.log")
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
    """Install the limiter's handler on the root logger.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(LimiterLogFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # Avoid double logging from uvicorn if it gets re-configured
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
