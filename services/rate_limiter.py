"""Admission control for the study feature routes.

Two limiters live here. ``DailyRateLimiter`` enforces a per-identifier quota
per UTC calendar day, counted in Redis when a durable store is configured
and in process memory otherwise. ``WindowRateLimiter`` caps requests per
(address, route) pair over a short fixed window and is always process-local.
"""

import asyncio
import math
import time
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol

from limits import RateLimitItemPerSecond
from limits.aio.storage import MemoryStorage
from limits.aio.strategies import FixedWindowRateLimiter
from redis.exceptions import RedisError

from config import ApplicationConfig
from models import QuotaRecord, QuotaStrategy, RateLimitResult
from utils import create_contextual_logger, log_exception
from utils.metrics import quota_store_fallbacks, rate_limit_decisions

from .redis_client import RedisClient

ANONYMOUS_IDENTIFIER = "anonymous"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_utc_midnight(now: datetime) -> datetime:
    """Midnight UTC at the start of the day following ``now``."""
    now = now.astimezone(timezone.utc)
    return datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc)


def seconds_until_midnight(now: datetime) -> int:
    return max(1, math.ceil((next_utc_midnight(now) - now).total_seconds()))


def quota_key(prefix: str, identifier: str, day: date) -> str:
    return f"{prefix}:{identifier}:{day.isoformat()}"


class QuotaStore(Protocol):
    """Backing store for daily quota counting."""

    strategy: QuotaStrategy

    async def check(self, key: str, limit: int, now: datetime) -> RateLimitResult:
        ...


class DurableQuotaStore:
    """Counts in Redis with INCR, expiring each counter at the next UTC midnight."""

    strategy = QuotaStrategy.DURABLE

    def __init__(self, redis_client: RedisClient) -> None:
        self.redis_client = redis_client

    async def check(self, key: str, limit: int, now: datetime) -> RateLimitResult:
        count = await self.redis_client.increment_with_expiry(key, seconds_until_midnight(now))
        if count > limit:
            ttl = await self.redis_client.get_ttl(key)
            return RateLimitResult(
                allowed=False,
                remaining=0,
                retry_after_seconds=max(0, ttl),
                strategy=self.strategy,
            )
        return RateLimitResult(allowed=True, remaining=max(0, limit - count), strategy=self.strategy)


class InProcessQuotaStore:
    """Counts in a dict guarded by an asyncio lock. Not shared across replicas."""

    strategy = QuotaStrategy.IN_PROCESS

    def __init__(self) -> None:
        self._records: Dict[str, QuotaRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def _prune_expired(self, now: datetime) -> None:
        expired = [key for key, record in self._records.items() if now > record.reset_at]
        for key in expired:
            del self._records[key]

    async def check(self, key: str, limit: int, now: datetime) -> RateLimitResult:
        async with self._lock:
            record = self._records.get(key)
            if record is None or now > record.reset_at:
                self._prune_expired(now)
                self._records[key] = QuotaRecord(count=1, reset_at=next_utc_midnight(now))
                return RateLimitResult(allowed=True, remaining=max(0, limit - 1), strategy=self.strategy)

            if record.count >= limit:
                retry_after = max(0.0, (record.reset_at - now).total_seconds())
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    retry_after_seconds=retry_after,
                    strategy=self.strategy,
                )

            record.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=max(0, limit - record.count),
                strategy=self.strategy,
            )


class DailyRateLimiter:
    """Per-identifier quota over a UTC calendar day.

    The durable store is used when Redis is configured. Any Redis failure
    during a check is logged and the in-process store answers instead, so
    ``check`` itself never raises on store trouble.
    """

    def __init__(
        self,
        config: ApplicationConfig,
        redis_client: Optional[RedisClient] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self.limit = config.daily_request_limit
        self.logger = create_contextual_logger(__name__, service="daily_rate_limiter")
        self._clock = clock
        self._durable: Optional[DurableQuotaStore] = None
        if redis_client is not None and redis_client.configured:
            self._durable = DurableQuotaStore(redis_client)
        self._fallback = InProcessQuotaStore()

    @property
    def strategy(self) -> QuotaStrategy:
        return self._durable.strategy if self._durable else self._fallback.strategy

    async def check(self, identifier: str) -> RateLimitResult:
        now = self._clock()
        key = quota_key(self.config.quota_key_prefix, identifier or ANONYMOUS_IDENTIFIER, now.date())

        result: Optional[RateLimitResult] = None
        if self._durable is not None:
            try:
                result = await self._durable.check(key, self.limit, now)
            except (RedisError, OSError) as e:
                quota_store_fallbacks.inc()
                log_exception(
                    self.logger,
                    e,
                    "Durable quota store unavailable, using in-process counts",
                    key=key,
                )

        if result is None:
            result = await self._fallback.check(key, self.limit, now)

        rate_limit_decisions.labels(
            strategy=result.strategy.value,
            outcome="allowed" if result.allowed else "denied",
        ).inc()
        if not result.allowed:
            self.logger.info(
                "Daily quota exhausted",
                identifier=identifier,
                retry_after_seconds=result.retry_after_seconds,
                strategy=result.strategy.value,
            )
        return result


class WindowRateLimiter:
    """Fixed-window limiter keyed by (address, route).

    Counting and expiry are delegated to ``limits``: each window key expires
    from the memory storage once its window has elapsed.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        storage: Optional[MemoryStorage] = None,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.item = RateLimitItemPerSecond(max_requests, max(1, int(window_seconds)))
        self.storage = storage if storage is not None else MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self.storage)

    @classmethod
    def from_config(cls, config: ApplicationConfig) -> "WindowRateLimiter":
        return cls(config.window_max_requests, config.window_seconds)

    async def check(self, address: str, route: str) -> RateLimitResult:
        identifiers = (address or ANONYMOUS_IDENTIFIER, route)
        allowed = await self._strategy.hit(self.item, *identifiers)
        stats = await self._strategy.get_window_stats(self.item, *identifiers)

        if allowed:
            result = RateLimitResult(
                allowed=True,
                remaining=stats.remaining,
                strategy=QuotaStrategy.WINDOW,
            )
        else:
            result = RateLimitResult(
                allowed=False,
                remaining=0,
                retry_after_seconds=max(0.0, stats.reset_time - time.time()),
                strategy=QuotaStrategy.WINDOW,
            )

        rate_limit_decisions.labels(
            strategy=QuotaStrategy.WINDOW.value,
            outcome="allowed" if result.allowed else "denied",
        ).inc()
        return result


def resolve_identifier(
    headers, client_host: Optional[str] = None, user_header: str = "x-user-id"
) -> str:
    """Pick the quota identifier for a request.

    Prefers an explicit user id header, then the first X-Forwarded-For entry,
    then the socket peer address.
    """
    user = (headers.get(user_header) or "").strip()
    if user:
        return user
    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return client_host or ANONYMOUS_IDENTIFIER
