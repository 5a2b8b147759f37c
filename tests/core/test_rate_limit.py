"""Tests for the Redis fixed-window rate limiter and its API dependency."""

import pytest
from httpx import AsyncClient

from pagegen.core.config import get_settings
from pagegen.core.rate_limit import RateLimiter
from pagegen.core.redis import RedisManager


class TestRateLimiter:
    async def test_allows_requests_up_to_limit(
        self, mock_redis_manager: RedisManager
    ) -> None:
        limiter = RateLimiter(mock_redis_manager, limit=2, window_seconds=60)

        first = await limiter.hit("10.0.0.1")
        second = await limiter.hit("10.0.0.1")
        third = await limiter.hit("10.0.0.1")

        assert first.allowed is True
        assert second.allowed is True
        assert third.allowed is False
        assert third.count == 3
        assert 0 < third.retry_after <= 60

    async def test_counts_each_client_separately(
        self, mock_redis_manager: RedisManager
    ) -> None:
        limiter = RateLimiter(mock_redis_manager, limit=1, window_seconds=60)

        assert (await limiter.hit("10.0.0.1")).allowed is True
        assert (await limiter.hit("10.0.0.2")).allowed is True

    async def test_allows_everything_without_redis(self) -> None:
        limiter = RateLimiter(RedisManager(), limit=1, window_seconds=60)

        for _ in range(3):
            result = await limiter.hit("10.0.0.1")
            assert result.allowed is True
            assert result.count == 0


class TestRateLimitDependency:
    @pytest.fixture(autouse=True)
    def strict_limit(self, test_settings: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
        monkeypatch.setenv("RATE_LIMIT_REQUESTS", "2")
        get_settings.cache_clear()

    async def test_returns_429_with_retry_after(self, async_client: AsyncClient) -> None:
        for _ in range(2):
            response = await async_client.get("/api/v1/businesses")
            assert response.status_code == 200

        response = await async_client.get("/api/v1/businesses")

        assert response.status_code == 429
        body = response.json()
        assert body["code"] == "RATE_LIMIT_EXCEEDED"
        assert "request_id" in body
        assert int(response.headers["Retry-After"]) > 0

    async def test_health_is_not_rate_limited(self, async_client: AsyncClient) -> None:
        for _ in range(5):
            response = await async_client.get("/health")
            assert response.status_code == 200
