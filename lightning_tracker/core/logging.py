"""Logging setup for Lightning Tracker.

Text output in development, one JSON object per line in production. Every
line carries the current request ID; realtime handlers store the channel's
socket ID there instead.
"""

import json
import logging
import re
import sys
import traceback
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

REDACTED = "***REDACTED***"

# Keys whose values never reach the logs: the weather API key travels as the
# ``appid`` query parameter and DATABASE_URL embeds the password
SENSITIVE_KEYS = frozenset(
    {
        "appid",
        "api_key",
        "apikey",
        "authorization",
        "database_url",
        "password",
        "secret",
        "token",
        "weather_api_key",
    }
)

_KEY_VALUE_PATTERN = re.compile(
    r"(?P<key>\b(?:" + "|".join(sorted(SENSITIVE_KEYS)) + r"))=(?P<value>[^&\s,;]+)",
    re.IGNORECASE,
)
# user:password@host in connection strings
_URL_PASSWORD_PATTERN = re.compile(r"(?P<scheme>[a-z0-9+]+://[^:/@\s]+):[^@\s]+@", re.IGNORECASE)

# Third-party loggers kept at WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy", "aiosqlite", "asyncio", "websockets")

_STANDARD_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "request_id",
    "event_type",
}


def redact(value: Any) -> Any:
    """Mask credentials in strings, dicts and sequences."""
    if isinstance(value, str):
        value = _KEY_VALUE_PATTERN.sub(lambda m: f"{m.group('key')}={REDACTED}", value)
        return _URL_PASSWORD_PATTERN.sub(lambda m: f"{m.group('scheme')}:{REDACTED}@", value)
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_KEYS else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(item) for item in value)
    return value


class SensitiveDataFilter(logging.Filter):
    """Redact credentials from messages and their arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact(record.msg)
        if record.args:
            record.args = redact(record.args)
        return True


class ContextFilter(logging.Filter):
    """Attach request ID and a default event type to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        if not hasattr(record, "event_type"):
            record.event_type = "general"
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record, extras included."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "request_id": getattr(record, "request_id", "-"),
            "event_type": getattr(record, "event_type", "general"),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS
        )
        if record.exc_info:
            payload["exception"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(payload, default=str)


TEXT_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(request_id)s | "
    "%(name)s:%(funcName)s:%(lineno)d | %(message)s"
)


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Emit JSON lines instead of text (production)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(SensitiveDataFilter())
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if json_logs else logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_error(
    logger: logging.Logger,
    message: str,
    error: Exception | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    """Log at ERROR with the traceback of ``error`` when given."""
    context = {**(extra or {}), "event_type": "error"}
    if error is None:
        logger.error(message, extra=context)
    else:
        logger.error(f"{message}: {error}", exc_info=error, extra=context)


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def clear_request_id() -> None:
    request_id_var.set(None)
