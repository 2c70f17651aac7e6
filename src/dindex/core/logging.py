"""
Structured logging for dindex services, workers and CLI commands.

Manifesto:
    A job queue polled by thousands of workers is only debuggable when
    every log line carries the caller, the request id and the batch it
    touched. structlog gives us key/value events that render as JSON for
    log aggregation and as colored lines on a developer terminal.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="dindex")
            ↓
        processor chain:
          1. TimeStamper (iso)
          2. merge_contextvars (request_id, caller, ...)
          3. add_log_level / add_logger_name
          4. service metadata
          5. ECS field names (JSON only)
          6. JSONRenderer | ConsoleRenderer

Examples:
    >>> from dindex.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> log = get_logger(__name__)
    >>> log.info("jobs_claimed", count=3, limit=3)

Tags:
    logging, structlog, observability, json-logging, dindex

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "dindex"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names Elasticsearch/ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


# Libraries that log every request or statement at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "dindex",
    *,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Safe to call more than once; the last call wins. Logs go to stderr
    by default so CLI output on stdout (tables, ``--json``) stays clean.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for JSON
            unless *stream* is a terminal
        service: Value of ``service.name`` on every event
        stream: Destination; defaults to ``sys.stderr`` at call time
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    stream = stream or sys.stderr
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level: {level!r}")

    if json_format is None:
        json_format = not (hasattr(stream, "isatty") and stream.isatty())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            _elasticsearch_compatible,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level, force=True)
    quiet_level = max(numeric_level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(request_id="abc123", caller="worker-7"):
            log.info("results_received")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
