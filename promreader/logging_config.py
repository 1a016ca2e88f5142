"""Structured logging for promreader.

Everything is routed through structlog on top of stdlib logging, so the
``logging.getLogger`` loggers used by the remote read pipeline and the
structlog loggers used by the API and CLI end up in the same stream.
Request-scoped fields (request ID, client) are bound with
``bind_request_context`` and merged into every entry logged while the
request is being served.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from promreader.config import get_settings

# Loggers that are too chatty at INFO when serving Prometheus' polling traffic.
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

_REDACTED_HEADERS = {"authorization", "cookie", "x-api-key"}


def add_timestamp(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp the entry with the current UTC time."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_headers(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Hide credentials Prometheus may forward from its remote_read config."""
    headers = event_dict.get("headers")
    if isinstance(headers, dict):
        event_dict["headers"] = {
            name: "***REDACTED***" if name.lower() in _REDACTED_HEADERS else value
            for name, value in headers.items()
        }
    return event_dict


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Overrides the configured level (e.g. "DEBUG" for --verbose)
        log_format: Overrides the configured format ("json" or "text")
    """
    settings = get_settings()
    level = getattr(logging, (log_level or settings.log_level).upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        redact_headers,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(log_format or settings.log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    quiet_level = level if level <= logging.DEBUG else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)


def bind_request_context(**fields: Any) -> None:
    """Attach fields to every entry logged while serving the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_error(
    logger: structlog.stdlib.BoundLogger,
    error: Exception,
    operation: str,
    **kwargs: Any,
) -> None:
    """Log a failed operation with its error type and message."""
    logger.error(
        "operation_failed",
        operation=operation,
        error_type=type(error).__name__,
        error_message=str(error),
        **kwargs,
    )
