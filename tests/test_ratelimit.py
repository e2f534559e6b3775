"""Tests for the rate limiters."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from food_ordering.services.ratelimit import MemoryRateLimiter, get_rate_limiter, reset_rate_limiter
from food_ordering.services.ratelimit.base import RateLimitResult
from food_ordering.services.ratelimit.redis_limiter import RedisRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMemoryRateLimiter:

    def test_allows_up_to_limit(self):
        limiter = MemoryRateLimiter(clock=FakeClock())

        results = [asyncio.run(limiter.hit("orders:u1", 3, 60)) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert results[2].remaining == 0
        assert results[3].retry_after_seconds == 60

    def test_window_resets(self):
        clock = FakeClock()
        limiter = MemoryRateLimiter(clock=clock)
        asyncio.run(limiter.hit("k", 1, 60))
        assert not asyncio.run(limiter.hit("k", 1, 60)).allowed

        clock.now += 60
        assert asyncio.run(limiter.hit("k", 1, 60)).allowed

    def test_keys_are_independent(self):
        limiter = MemoryRateLimiter(clock=FakeClock())
        asyncio.run(limiter.hit("orders:u1", 1, 60))
        assert asyncio.run(limiter.hit("orders:u2", 1, 60)).allowed

    def test_expired_windows_are_dropped(self):
        clock = FakeClock()
        limiter = MemoryRateLimiter(clock=clock)
        asyncio.run(limiter.hit("orders:u1", 5, 60))
        asyncio.run(limiter.hit("orders:u2", 5, 120))

        clock.now += 60
        asyncio.run(limiter.hit("orders:u3", 5, 60))

        assert set(limiter._windows) == {"orders:u2", "orders:u3"}


class TestRateLimitResult:

    def test_headers_include_retry_after_when_blocked(self):
        headers = RateLimitResult(allowed=False, limit=20, remaining=0, retry_after_seconds=42).headers()
        assert headers == {
            "X-RateLimit-Limit": "20",
            "X-RateLimit-Remaining": "0",
            "Retry-After": "42",
        }

    def test_headers_without_retry_after_when_allowed(self):
        headers = RateLimitResult(allowed=True, limit=20, remaining=5).headers()
        assert "Retry-After" not in headers


class TestRedisRateLimiter:

    def test_redis_error_allows_request(self):
        limiter = RedisRateLimiter("redis://localhost:6379/0")
        pipeline = MagicMock()
        pipeline.__aenter__.return_value = pipeline
        pipeline.execute = AsyncMock(side_effect=RedisConnectionError("down"))
        limiter._client = MagicMock()
        limiter._client.pipeline.return_value = pipeline

        result = asyncio.run(limiter.hit("orders:u1", 20, 900))
        assert result.allowed


class TestFactory:

    def test_development_uses_memory_limiter(self):
        reset_rate_limiter()
        try:
            assert get_rate_limiter().provider_name == "memory"
        finally:
            reset_rate_limiter()
