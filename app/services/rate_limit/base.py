"""
Rate Limit Store Abstract Base Class

Defines the contract for the order-intake throttle. A store maps a client
key (network address) to a (count, window reset time) pair:

    - no entry, or the window has expired -> count = 1, new window
    - count already at the ceiling        -> reject
    - otherwise                           -> count += 1

This is a best-effort throttle, not a correctness guarantee.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RateLimitDecision:
    """
    Outcome of a single hit.

    Attributes:
        allowed: Whether the attempt may proceed
        count: Attempts recorded in the current window
        limit: Ceiling for the window
        retry_after: Seconds until the window resets
    """
    allowed: bool
    count: int
    limit: int
    retry_after: float = 0.0


class BaseRateLimitStore(ABC):
    """Abstract base class for rate limit stores."""

    def __init__(self, limit: int, window_seconds: float):
        self.limit = limit
        self.window_seconds = window_seconds

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name (e.g., "memory", "redis")."""
        pass

    @abstractmethod
    async def hit(self, key: str) -> RateLimitDecision:
        """Record an attempt for ``key`` and decide whether it is allowed."""
        pass

    @abstractmethod
    async def reset(self, key: str | None = None) -> None:
        """Forget ``key`` (or every key when None)."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
