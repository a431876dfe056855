"""Service layer for the Study Assistant gateway."""

from .chunker import normalize_newlines, split_into_chunks
from .exceptions import (
    ConfigurationError,
    InferenceRequestError,
    MalformedInputError,
    PayloadTooLargeError,
    StudyAssistError,
    TransientUpstreamError,
    UpstreamRejectionError,
)
from .health_metrics import HealthMetricsService
from .inference_client import InferenceClient
from .rate_limiter import DailyRateLimiter, WindowRateLimiter, resolve_identifier
from .redis_client import RedisClient
from .study_service import StudyService

__all__ = [
    "ConfigurationError",
    "DailyRateLimiter",
    "HealthMetricsService",
    "InferenceClient",
    "InferenceRequestError",
    "MalformedInputError",
    "PayloadTooLargeError",
    "RedisClient",
    "StudyAssistError",
    "StudyService",
    "TransientUpstreamError",
    "UpstreamRejectionError",
    "WindowRateLimiter",
    "normalize_newlines",
    "resolve_identifier",
    "split_into_chunks",
]
