"""Logging utilities for the Study Assistant gateway.

Structured logging on top of structlog, rendered either as JSON or as a
single human-readable line, with the request correlation ID attached to
every event emitted while a request is being served.
"""

import json
import logging
import os
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

# Context variable for correlation ID
correlation_id_context: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def _console_formatter(logger: Any, name: str, event_dict: Dict[str, Any]) -> str:
    """Render `timestamp [level]: event {context}`."""
    timestamp = event_dict.pop("timestamp", "")
    level = event_dict.pop("level", "info")
    event = event_dict.pop("event", "")
    event_dict.pop("logger", None)

    if event_dict:
        context_json = json.dumps(event_dict, sort_keys=True, separators=(",", ":"), default=str)
        return f"{timestamp} [{level}]: {event} {context_json}"
    return f"{timestamp} [{level}]: {event}"


def _add_process_context(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict["pid"] = os.getpid()

    correlation_id = correlation_id_context.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)

    return event_dict


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID for the current context, generating one if needed."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    correlation_id_context.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID."""
    return correlation_id_context.get()


def clear_correlation_id() -> None:
    """Clear the current correlation ID."""
    correlation_id_context.set(None)


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: The minimum log level to output (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output pure JSON. Otherwise one console line per event.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_process_context,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(_console_formatter)

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger with optional initial context bound to it."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def create_contextual_logger(
    name: str,
    correlation_id: Optional[str] = None,
    **context: Any
) -> structlog.stdlib.BoundLogger:
    """Create a logger bound to a correlation ID and additional context.

    Args:
        name: The logger name (typically __name__)
        correlation_id: Optional correlation ID. If not provided, uses the current context ID.
        **context: Additional context fields to bind to the logger

    Returns:
        A bound logger
    """
    bind_context: Dict[str, Any] = dict(context)

    correlation_id = correlation_id or get_correlation_id()
    if correlation_id:
        bind_context["correlation_id"] = correlation_id

    return get_logger(name, **bind_context)


def log_exception(
    logger: structlog.stdlib.BoundLogger,
    exception: BaseException,
    message: str = "An error occurred",
    **additional_context: Any
) -> None:
    """Log an exception with its type, message and stack trace."""
    context = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
        **additional_context
    }

    logger.error(message, exc_info=exception, **context)
