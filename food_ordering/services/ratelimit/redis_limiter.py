"""
Redis Rate Limiter Implementation

Fixed-window counter shared by every API worker:
    INCR key; on the first hit of a window, EXPIRE key window_seconds.

If Redis is unreachable the request is allowed and the failure logged,
so a Redis outage degrades protection rather than taking ordering down.
"""

import logging
from typing import Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from food_ordering.core.config import get_settings
from food_ordering.services.ratelimit.base import BaseRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


class RedisRateLimiter(BaseRateLimiter):

    KEY_PREFIX = "rate_limit:"

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url or get_settings().redis_url
        self._client = aioredis.from_url(self.redis_url, socket_timeout=2)
        logger.info("RedisRateLimiter initialized")

    @property
    def provider_name(self) -> str:
        return "redis"

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        redis_key = f"{self.KEY_PREFIX}{key}"
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(redis_key)
                pipe.ttl(redis_key)
                count, ttl = await pipe.execute()

            if ttl < 0:
                await self._client.expire(redis_key, window_seconds)
                ttl = window_seconds
        except RedisError as e:
            logger.error(f"Rate limiter unavailable, allowing request for {key}: {e}")
            return RateLimitResult(allowed=True, limit=limit, remaining=limit)

        allowed = count <= limit
        if not allowed:
            logger.warning(f"Rate limit exceeded for {key} ({count}/{limit})")
        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=max(limit - count, 0),
            retry_after_seconds=max(ttl, 1),
        )

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
