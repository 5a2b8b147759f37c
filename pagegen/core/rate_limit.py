"""Fixed-window request rate limiting backed by Redis.

Each client IP gets rate_limit_requests calls per rate_limit_window_seconds.
When Redis is unavailable the limiter allows every request.
"""

import time
from dataclasses import dataclass

from fastapi import Depends, Request

from pagegen.core.config import Settings, get_settings
from pagegen.core.exceptions import RateLimitError
from pagegen.core.logging import get_logger
from pagegen.core.redis import RedisManager, get_redis

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    count: int
    limit: int
    retry_after: int


class RateLimiter:
    """Counts requests per identifier in fixed time windows."""

    def __init__(self, redis: RedisManager, limit: int, window_seconds: int) -> None:
        self._redis = redis
        self._limit = limit
        self._window = window_seconds

    def _key(self, identifier: str, now: float) -> str:
        window_index = int(now // self._window)
        return f"ratelimit:{identifier}:{window_index}"

    async def hit(self, identifier: str) -> RateLimitResult:
        now = time.time()
        key = self._key(identifier, now)
        retry_after = self._window - int(now % self._window)

        count = await self._redis.count_in_window(key, self._window)
        if count is None:
            return RateLimitResult(
                allowed=True, count=0, limit=self._limit, retry_after=0
            )

        return RateLimitResult(
            allowed=count <= self._limit,
            count=count,
            limit=self._limit,
            retry_after=retry_after,
        )


async def enforce_rate_limit(
    request: Request,
    settings: Settings = Depends(get_settings),
    redis: RedisManager = Depends(get_redis),
) -> None:
    """FastAPI dependency applied to the versioned API router."""
    if not settings.rate_limit_enabled:
        return

    client_ip = request.client.host if request.client else "unknown"
    limiter = RateLimiter(
        redis, settings.rate_limit_requests, settings.rate_limit_window_seconds
    )
    result = await limiter.hit(client_ip)

    if not result.allowed:
        logger.warning(
            "Rate limit exceeded",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "path": request.url.path,
                "client_ip": client_ip,
                "count": result.count,
                "limit": result.limit,
            },
        )
        raise RateLimitError(retry_after=result.retry_after)
