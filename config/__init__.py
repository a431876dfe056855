"""Configuration management for the Study Assistant gateway.

This module handles all configuration loading and validation using Pydantic BaseSettings.
Configuration is loaded from environment variables and .env files.
"""

from .config import (
    ApplicationConfig,
    ChunkingConfig,
    InferenceConfig,
    MonitoringConfig,
    RateLimitConfig,
    RedisConfig,
    ServerConfig,
    str_to_bool,
)


def load_config() -> ApplicationConfig:
    """Load and validate application configuration."""
    return ApplicationConfig()


__all__ = [
    "ApplicationConfig",
    "ChunkingConfig",
    "InferenceConfig",
    "MonitoringConfig",
    "RateLimitConfig",
    "RedisConfig",
    "ServerConfig",
    "load_config",
    "str_to_bool",
]
