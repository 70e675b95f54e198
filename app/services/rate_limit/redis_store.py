"""
Redis Rate Limit Store

Shared counters for deployments running several API processes. Each key is
an integer incremented with INCR; the first hit of a window sets the
expiry, so the counter disappears when the window elapses.
"""

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.services.rate_limit.base import BaseRateLimitStore, RateLimitDecision

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit:orders:"


class RedisRateLimitStore(BaseRateLimitStore):
    """Fixed-window counters in Redis."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        client: Optional[aioredis.Redis] = None,
    ):
        super().__init__(limit, window_seconds)
        self.client = client or aioredis.from_url(get_settings().redis_url)
        logger.info(
            f"RedisRateLimitStore initialized "
            f"(limit={limit}, window={window_seconds}s)"
        )

    @property
    def backend_name(self) -> str:
        return "redis"

    async def hit(self, key: str) -> RateLimitDecision:
        redis_key = f"{KEY_PREFIX}{key}"
        window = int(self.window_seconds)

        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.incr(redis_key)
                pipe.ttl(redis_key)
                count, ttl = await pipe.execute()

            if count == 1 or ttl < 0:
                await self.client.expire(redis_key, window)
                ttl = window
        except RedisError as e:
            # The throttle is best effort: an unreachable Redis lets orders through.
            logger.error(f"Rate limit check skipped for {key}: {e}")
            return RateLimitDecision(allowed=True, count=0, limit=self.limit)

        # INCR keeps counting past the ceiling; report the attempt as rejected
        # but keep the visible count at the limit.
        if count > self.limit:
            return RateLimitDecision(
                allowed=False,
                count=self.limit,
                limit=self.limit,
                retry_after=float(ttl),
            )

        return RateLimitDecision(
            allowed=True,
            count=int(count),
            limit=self.limit,
            retry_after=float(ttl),
        )

    async def reset(self, key: str | None = None) -> None:
        if key is not None:
            await self.client.delete(f"{KEY_PREFIX}{key}")
            return
        async for redis_key in self.client.scan_iter(match=f"{KEY_PREFIX}*"):
            await self.client.delete(redis_key)

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis rate limiter health check failed: {e}")
            return False
