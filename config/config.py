"""Configuration classes for the Study Assistant gateway.

This module contains all configuration classes organized by domain.
Configuration is loaded from environment variables and .env files.
"""

from typing import Any, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def str_to_bool(value: Any) -> bool:
    """Convert various string representations to boolean values.

    Args:
        value: The value to convert. Can be bool, str, int, or any other type.

    Returns:
        bool: The converted boolean value.

    Examples:
        >>> str_to_bool("true")
        True
        >>> str_to_bool("off")
        False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on", "enabled")
    return bool(value)


class ServerConfig(BaseSettings):
    """Server configuration settings."""

    # Application metadata
    app_name: str = "Study Assistant Gateway"
    app_version: str = "1.0.0"
    debug: bool = False

    server_port: int = Field(default=8000, alias="SERVER_PORT")
    server_host: str = Field(default="0.0.0.0", alias="SERVER_HOST")
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")


class RedisConfig(BaseSettings):
    """Durable quota store settings. Leaving REDIS_URL unset selects the in-process store."""

    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    redis_socket_timeout: float = 2.0
    redis_max_connections: int = 10
    quota_key_prefix: str = "rate"

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank URL as not configured."""
        if v is None or not v.strip():
            return None
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("redis_url must start with redis://, rediss:// or unix://")
        return v.strip()


class InferenceConfig(BaseSettings):
    """Hosted inference service settings."""

    hugging_face_api_key: Optional[str] = Field(default=None, alias="HUGGING_FACE_API_KEY")
    inference_base_url: str = Field(
        default="https://api-inference.huggingface.co", alias="INFERENCE_BASE_URL"
    )
    inference_timeout: float = Field(default=60.0, alias="INFERENCE_TIMEOUT")
    inference_max_attempts: int = 3
    inference_backoff_base: float = 2.0
    inference_backoff_cap: float = 8.0
    inference_transport_backoff_step: float = 0.2

    # Response cache
    cache_max_entries: int = Field(default=500, alias="CACHE_MAX_ENTRIES")
    cache_ttl_seconds: float = Field(default=6 * 60 * 60, alias="CACHE_TTL_SECONDS")

    # Models used by the study features
    translation_model: str = Field(default="facebook/m2m100_418M", alias="TRANSLATION_MODEL")
    tts_model: str = Field(default="facebook/mms-tts", alias="TTS_MODEL")
    tts_accept: str = "audio/wav"
    quiz_model: str = Field(default="google/flan-t5-large", alias="QUIZ_MODEL")

    @field_validator("inference_base_url")
    @classmethod
    def validate_inference_base_url(cls, v: str) -> str:
        """Ensure the inference URL is properly formatted."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("inference_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("inference_max_attempts", "cache_max_entries")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v


class RateLimitConfig(BaseSettings):
    """Admission control settings."""

    daily_request_limit: int = Field(default=200, alias="DAILY_REQUEST_LIMIT")
    window_seconds: float = 60.0
    window_max_requests: int = Field(default=20, alias="WINDOW_MAX_REQUESTS")

    @field_validator("daily_request_limit", "window_max_requests")
    @classmethod
    def validate_limits(cls, v: int) -> int:
        if v < 1:
            raise ValueError("request limits must be at least 1")
        return v


class ChunkingConfig(BaseSettings):
    """Text chunking and upload settings."""

    chunk_char_limit: int = Field(default=3000, alias="CHUNK_CHAR_LIMIT")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")


class MonitoringConfig(BaseSettings):
    """Monitoring configuration settings."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    @field_validator("log_json", mode="before")
    @classmethod
    def validate_log_json(cls, v) -> bool:
        """Convert string boolean values to actual boolean."""
        return str_to_bool(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()


class ApplicationConfig(
    ServerConfig,
    RedisConfig,
    InferenceConfig,
    RateLimitConfig,
    ChunkingConfig,
    MonitoringConfig,
    BaseSettings
):
    """Main application configuration that combines all configuration domains."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def durable_store_configured(self) -> bool:
        return self.redis_url is not None
