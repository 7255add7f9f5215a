"""JSON logging for the wardrobe service.

Every record carries the correlation id of the request or operation that
produced it. Field values pass through :func:`redact_for_log` so credentials,
contact details and uploaded photos never reach the log stream.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import uuid
from typing import Any, Dict, Iterator

CORRELATION_ID: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRIBUTES = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "taskName"}

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "password_hash",
        "email",
        "phone_number",
        "code",
        "token",
        "image_bytes",
        "image_url",
        "question",
        "notes",
    }
)
_EMAIL = re.compile(r"[\w.\-]+@[\w.\-]+")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: level, logger, event, correlation id and extras."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "event": getattr(record, "event", message),
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
        }
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and key not in entry
        }
        entry.update(redact_for_log(extras))
        return json.dumps(entry, default=str)


def configure_logging(level: int | str | None = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level or os.getenv("LOG_LEVEL", "INFO"), handlers=[handler], force=True)


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def redact_for_log(value: Any) -> Any:
    """Return a copy of ``value`` that is safe to log.

    Sensitive keys are masked wholesale, email addresses inside strings are
    replaced, URLs (including ``data:`` URLs carrying photos) are dropped and
    raw bytes are reduced to their length.
    """

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        if _EMAIL.search(value):
            return _EMAIL.sub("[redacted-email]", value)
        if value.lower().startswith(("http", "data:")):
            return "[redacted-url]"
        return value
    if isinstance(value, (bytes, bytearray)):
        return f"[{len(value)} bytes]"
    if isinstance(value, dict):
        return {key: "[redacted]" if key in SENSITIVE_KEYS else redact_for_log(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item) for item in value]
    return str(value)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Adopt ``correlation_id``, or keep the current one, or mint a new one."""

    resolved = correlation_id or CORRELATION_ID.get() or uuid.uuid4().hex
    CORRELATION_ID.set(resolved)
    return resolved


@contextlib.contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    token = CORRELATION_ID.set(correlation_id or CORRELATION_ID.get() or uuid.uuid4().hex)
    try:
        yield CORRELATION_ID.get()
    finally:
        CORRELATION_ID.reset(token)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    exc_info = fields.pop("exc_info", None)
    logger.log(
        level,
        event,
        exc_info=exc_info,
        extra={"event": event, "correlation_id": correlation_id, **redact_for_log(fields)},
    )


@contextlib.contextmanager
def operation_context(name: str, **attributes: Any) -> Iterator[str]:
    """Run one named operation (outfit generation, advice) under its own correlation id."""

    with correlation_context(attributes.get("correlation_id")) as correlation_id:
        logging.getLogger(__name__).debug("operation %s", name, extra={"operation": name})
        yield correlation_id


__all__ = [
    "JsonFormatter",
    "configure_logging",
    "correlation_context",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "redact_for_log",
    "operation_context",
]
