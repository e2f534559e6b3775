"""
Rate Limiter Abstract Base Class

Fixed-window request counting keyed by caller identity. The limiter is
injected into the application rather than kept as process-local state,
so several API workers share one view of every caller's usage.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RateLimitResult:
    """
    Outcome of counting one request.

    Attributes:
        allowed: Whether the request fits in the current window
        limit: Requests allowed per window
        remaining: Requests left in the current window
        retry_after_seconds: Seconds until the window resets
    """
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int = 0

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


class BaseRateLimiter(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """
        Count one request for ``key`` and report whether it is allowed.

        Args:
            key: Caller identity (e.g. "orders:<user id>")
            limit: Requests allowed per window
            window_seconds: Window length
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
