"""Utility modules for the Study Assistant gateway."""

from .logging import (
    clear_correlation_id,
    configure_logging,
    create_contextual_logger,
    get_correlation_id,
    get_logger,
    log_exception,
    set_correlation_id,
)
from .ttl_cache import TTLCache

__all__ = [
    "TTLCache",
    "configure_logging",
    "create_contextual_logger",
    "get_logger",
    "log_exception",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
]
