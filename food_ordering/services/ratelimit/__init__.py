"""
Rate Limiter Factory

Returns the in-memory or Redis rate limiter based on ENV_MODE.
"""

import logging
from functools import lru_cache

from food_ordering.core.config import get_settings
from food_ordering.services.ratelimit.base import BaseRateLimiter, RateLimitResult
from food_ordering.services.ratelimit.memory import MemoryRateLimiter

logger = logging.getLogger(__name__)


@lru_cache()
def get_rate_limiter() -> BaseRateLimiter:
    """Get the configured rate limiter."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Rate Limiter: Using MemoryRateLimiter (development mode)")
        return MemoryRateLimiter()

    from food_ordering.services.ratelimit.redis_limiter import RedisRateLimiter

    logger.info(f"Rate Limiter: Using RedisRateLimiter ({settings.env_mode.value} mode)")
    return RedisRateLimiter(settings.redis_url)


def reset_rate_limiter() -> None:
    """Clear the cached limiter instance."""
    get_rate_limiter.cache_clear()


__all__ = [
    "get_rate_limiter",
    "reset_rate_limiter",
    "BaseRateLimiter",
    "RateLimitResult",
    "MemoryRateLimiter",
]
