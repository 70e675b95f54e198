"""
Rate Limiter Factory

Returns the configured order-intake throttle.

Environment Switching:
    - RATE_LIMIT_BACKEND=memory -> InMemoryRateLimitStore (single process)
    - RATE_LIMIT_BACKEND=redis  -> RedisRateLimitStore (shared by all processes)
"""

import logging
from functools import lru_cache

from app.core.config import RateLimitBackend, get_settings
from app.services.rate_limit.base import BaseRateLimitStore, RateLimitDecision
from app.services.rate_limit.memory import InMemoryRateLimitStore
from app.services.rate_limit.redis_store import RedisRateLimitStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_rate_limiter() -> BaseRateLimitStore:
    """Get the configured rate limit store (cached)."""
    settings = get_settings()

    if settings.rate_limit_backend == RateLimitBackend.REDIS:
        logger.info("Rate Limiter: Using RedisRateLimitStore")
        return RedisRateLimitStore(
            limit=settings.rate_limit_max_orders,
            window_seconds=settings.rate_limit_window_seconds,
        )

    logger.info("Rate Limiter: Using InMemoryRateLimitStore")
    return InMemoryRateLimitStore(
        limit=settings.rate_limit_max_orders,
        window_seconds=settings.rate_limit_window_seconds,
    )


def reset_rate_limiter() -> None:
    """Clear the cached store; the next call builds a fresh one."""
    get_rate_limiter.cache_clear()


__all__ = [
    "get_rate_limiter",
    "reset_rate_limiter",
    "BaseRateLimitStore",
    "RateLimitDecision",
    "InMemoryRateLimitStore",
    "RedisRateLimitStore",
]
