"""Health and metrics service for the Study Assistant gateway."""

import time
from datetime import datetime, timezone
from typing import Any, Dict

from prometheus_client import REGISTRY, generate_latest

from config import ApplicationConfig
from utils import create_contextual_logger

from .inference_client import InferenceClient
from .rate_limiter import DailyRateLimiter
from .redis_client import RedisClient


class HealthMetricsService:
    """Reports component health and exposes Prometheus metrics."""

    def __init__(
        self,
        config: ApplicationConfig,
        redis_client: RedisClient,
        inference_client: InferenceClient,
        daily_limiter: DailyRateLimiter,
    ) -> None:
        self.config = config
        self.redis_client = redis_client
        self.inference_client = inference_client
        self.daily_limiter = daily_limiter
        self.logger = create_contextual_logger(__name__, service="health_metrics")
        self.start_time = time.time()

    async def get_health_status(self) -> Dict[str, Any]:
        redis_status = await self.redis_client.health_check()
        inference_status = await self.inference_client.health_check()

        # A missing credential breaks every feature; a lost Redis only degrades quota sharing.
        if inference_status["status"] != "healthy":
            status = "unhealthy"
        elif redis_status["status"] == "unhealthy":
            status = "degraded"
        else:
            status = "healthy"

        return {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": self.config.app_version,
            "uptime_seconds": int(time.time() - self.start_time),
            "quota_strategy": self.daily_limiter.strategy.value,
            "components": {
                "redis": redis_status,
                "inference": inference_status,
            },
        }

    async def get_metrics_data(self) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": int(time.time() - self.start_time),
            "cache_entries": len(self.inference_client.cache),
            "cache_capacity": self.inference_client.cache.max_entries,
            "daily_request_limit": self.config.daily_request_limit,
            "quota_strategy": self.daily_limiter.strategy.value,
        }

    def get_prometheus_metrics(self) -> bytes:
        return generate_latest(REGISTRY)
