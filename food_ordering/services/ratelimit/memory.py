"""
In-memory rate limiter for development and tests.

Only correct for a single process; staging and production use the Redis
implementation.
"""

import logging
import time
from typing import Callable

from food_ordering.services.ratelimit.base import BaseRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


class MemoryRateLimiter(BaseRateLimiter):

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: dict[str, tuple[int, float]] = {}

    @property
    def provider_name(self) -> str:
        return "memory"

    def _prune(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if now >= reset_at]
        for key in expired:
            del self._windows[key]

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        now = self._clock()
        self._prune(now)
        count, reset_at = self._windows.get(key, (0, now + window_seconds))

        count += 1
        self._windows[key] = (count, reset_at)

        allowed = count <= limit
        if not allowed:
            logger.warning(f"Rate limit exceeded for {key} ({count}/{limit})")
        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=max(limit - count, 0),
            retry_after_seconds=max(int(reset_at - now), 1),
        )

    async def health_check(self) -> bool:
        return True
