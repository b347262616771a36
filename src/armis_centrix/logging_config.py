"""
Structured logging configuration for the Armis Centrix client.

Every record is emitted as one JSON object carrying the standard fields
(timestamp, level, logger, request_id, message) plus whatever context the
call site attached through ``log_with_context``.

Log Format:
    {
        "timestamp": "2025-01-01T00:00:00.123456+00:00",
        "level": "INFO",
        "logger": "armis_centrix.session",
        "request_id": "5f0c...",
        "message": "Authenticated with Armis",
        "user_id": 42,
        "token_expiry": "2025-01-01T00:55:00+00:00"
    }

Credential keys and access tokens are never passed as context.

Usage:
    from armis_centrix.logging_config import setup_logging, get_logger, log_with_context

    setup_logging(log_level="INFO")
    logger = get_logger(__name__)

    with RequestContext():
        log_with_context(logger, "info", "Fetching policy", policy_id="12")
"""

import json
import logging
import sys
import uuid
from collections.abc import Callable
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from types import TracebackType
from typing import override

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# LogRecord attributes that are not user-supplied context
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single JSON line.

    Extra fields passed via ``extra=`` become top-level keys. Values that are
    not JSON serializable are rendered with ``str()``.
    """

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": _request_id.get(),
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging to stderr.

    Should be called once by the application entry point; library code only
    ever calls ``get_logger``.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stdout is reserved for CLI output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name``; handlers are attached by ``setup_logging``."""
    return logging.getLogger(name)


def get_request_id() -> str | None:
    """Return the request id bound to the current context, if any."""
    return _request_id.get()


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """
    Emit ``message`` with keyword context as top-level JSON fields.

    Args:
        logger: Target logger
        level: Lower-case level name, e.g. "debug" or "warning"
        message: Log message
        **context: Extra fields merged into the record

    Example:
        >>> log_with_context(logger, "warning", "Retrying request", attempt=2)
    """
    log_func: Callable[..., None] = getattr(logger, level.lower())
    log_func(message, extra=dict(context))


class RequestContext:
    """
    Bind a request id to every log record emitted inside the block.

    Nested contexts keep the outermost id, so a retried request and the
    re-authentication it triggers share one id.

    Example:
        >>> with RequestContext() as request_id:
        ...     client.request("GET", "policies", PolicyDetails, resource_id="1")
    """

    def __init__(self, request_id: str | None = None) -> None:
        self.request_id: str = request_id or _request_id.get() or str(uuid.uuid4())
        self._token: Token[str | None] | None = None

    def __enter__(self) -> str:
        self._token = _request_id.set(self.request_id)
        return self.request_id

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._token is not None:
            _request_id.reset(self._token)
            self._token = None
