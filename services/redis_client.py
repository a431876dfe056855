"""Redis client service for the Study Assistant gateway.

This module provides Redis connectivity and the counter operations backing
the durable daily quota store.
"""

from typing import Any, Dict, Optional

import redis.asyncio as redis

from config import ApplicationConfig
from utils import create_contextual_logger, log_exception


class RedisClient:
    """Async Redis client with connection management and quota counter operations."""

    def __init__(self, config: ApplicationConfig) -> None:
        """Initialize Redis client."""
        self.config = config
        self.logger = create_contextual_logger(__name__, service="redis_client")
        self._pool: Optional[redis.ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._connected = False

    @property
    def configured(self) -> bool:
        return self.config.redis_url is not None

    async def connect(self) -> None:
        """Establish Redis connection."""
        try:
            self._pool = redis.ConnectionPool.from_url(
                self.config.redis_url,
                socket_timeout=self.config.redis_socket_timeout,
                socket_connect_timeout=self.config.redis_socket_timeout,
                max_connections=self.config.redis_max_connections,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)

            # Test connection
            await self._client.ping()
            self._connected = True

            self.logger.info(
                "Redis connection established successfully",
                serviceName="RedisClient",
                operationName="connect",
                success=True,
            )
        except Exception as e:
            self._connected = False
            log_exception(
                self.logger,
                e,
                "Redis connection failed: RedisClient.connect",
                serviceName="RedisClient",
                operationName="connect",
            )
            raise

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._connected = False
            self.logger.info("Disconnected from Redis")

    async def is_connected(self) -> bool:
        """Check Redis connection status."""
        if not self._client or not self._connected:
            return False

        try:
            await self._client.ping()
            return True
        except Exception:
            self._connected = False
            return False

    async def _ensure_connected(self) -> None:
        """Ensure Redis connection is established."""
        if not await self.is_connected():
            await self.connect()

    async def increment_with_expiry(self, key: str, expire_seconds: int) -> int:
        """Atomically increment ``key`` and set its expiry on the first increment.

        Returns:
            The post-increment count.
        """
        await self._ensure_connected()

        try:
            count = int(await self._client.incr(key))
            if count == 1:
                await self._client.expire(key, expire_seconds)
            self.logger.debug("Quota counter incremented", key=key, count=count)
            return count
        except Exception as e:
            self.logger.error(
                "Failed to increment quota counter",
                key=key,
                error=str(e),
            )
            raise

    async def get_ttl(self, key: str) -> int:
        """Remaining time to live of ``key`` in seconds (negative if none)."""
        await self._ensure_connected()

        try:
            return int(await self._client.ttl(key))
        except Exception as e:
            self.logger.error(
                "Failed to read quota counter TTL",
                key=key,
                error=str(e),
            )
            raise

    async def health_check(self) -> Dict[str, Any]:
        """Perform Redis health check."""
        if not self.configured:
            return {"status": "disabled"}
        try:
            if not await self.is_connected():
                return {
                    "status": "unhealthy",
                    "error": "Not connected to Redis"
                }
            return {"status": "healthy"}
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e)
            }
