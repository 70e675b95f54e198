"""
In-Memory Rate Limit Store

Process-local counters guarded by a mutex. Counters are neither durable nor
shared between worker processes; use the Redis store for multi-instance
deployments.
"""

import logging
import threading
import time
from typing import Callable

from app.services.rate_limit.base import BaseRateLimitStore, RateLimitDecision

logger = logging.getLogger(__name__)


class InMemoryRateLimitStore(BaseRateLimitStore):
    """
    Dictionary of ``key -> [count, reset_at]``.

    Expired windows are swept from ``hit`` at most once per window.

    Attributes:
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(limit, window_seconds)
        self.clock = clock
        self._entries: dict[str, list[float]] = {}
        self._lock = threading.Lock()
        self._next_purge = clock() + window_seconds

        logger.info(
            f"InMemoryRateLimitStore initialized "
            f"(limit={limit}, window={window_seconds}s)"
        )

    @property
    def backend_name(self) -> str:
        return "memory"

    async def hit(self, key: str) -> RateLimitDecision:
        now = self.clock()

        with self._lock:
            if now >= self._next_purge:
                self._purge(now)
                self._next_purge = now + self.window_seconds

            entry = self._entries.get(key)

            if entry is None or now > entry[1]:
                self._entries[key] = [1, now + self.window_seconds]
                return RateLimitDecision(
                    allowed=True,
                    count=1,
                    limit=self.limit,
                    retry_after=self.window_seconds,
                )

            count, reset_at = entry
            if count >= self.limit:
                return RateLimitDecision(
                    allowed=False,
                    count=int(count),
                    limit=self.limit,
                    retry_after=max(reset_at - now, 0.0),
                )

            entry[0] = count + 1
            return RateLimitDecision(
                allowed=True,
                count=int(entry[0]),
                limit=self.limit,
                retry_after=max(reset_at - now, 0.0),
            )

    async def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Drop expired windows; returns how many were removed."""
        with self._lock:
            return self._purge(self.clock())

    def _purge(self, now: float) -> int:
        expired = [k for k, (_, reset_at) in self._entries.items() if now > reset_at]
        for k in expired:
            del self._entries[k]
        return len(expired)

    @property
    def tracked_keys(self) -> int:
        return len(self._entries)

    async def health_check(self) -> bool:
        return True
