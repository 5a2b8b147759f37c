"""Optional Redis layer for request counters and the webhook cache.

Two things live in Redis: fixed-window request counters for the API rate
limiter and the cached list of active webhooks. Neither is authoritative,
so every call degrades to None (or False) when Redis is not configured,
unreachable, or its circuit is open. Callers treat that as a cache miss
or as "allow the request".
"""

import asyncio
import json
import time
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from pagegen.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from pagegen.core.config import Settings, get_settings
from pagegen.core.logging import get_logger, redis_logger

logger = get_logger(__name__)

CONNECT_ATTEMPTS = 3
CONNECT_BACKOFF_SECONDS = 0.5


def _build_circuit_breaker(settings: Settings) -> CircuitBreaker:
    return CircuitBreaker(
        config=CircuitBreakerConfig(
            failure_threshold=settings.redis_circuit_failure_threshold,
            recovery_timeout=settings.redis_circuit_recovery_timeout,
        ),
        name="redis",
    )


class RedisManager:
    """Pooled Redis client guarded by a circuit breaker."""

    def __init__(self) -> None:
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None
        self._circuit_breaker: CircuitBreaker | None = None
        self._available = False

    @property
    def available(self) -> bool:
        return self._available and self._client is not None

    @property
    def circuit_breaker(self) -> CircuitBreaker | None:
        return self._circuit_breaker

    async def init_redis(self) -> bool:
        """Open the pool and ping it. Returns False when Redis is off or down."""
        settings = get_settings()
        if not settings.redis_url:
            logger.info("REDIS_URL not set, rate limiting and webhook caching disabled")
            return False

        redis_url = str(settings.redis_url)
        self._circuit_breaker = _build_circuit_breaker(settings)
        self._pool = ConnectionPool.from_url(
            redis_url,
            max_connections=settings.redis_pool_size,
            socket_connect_timeout=settings.redis_connect_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )
        self._client = Redis(connection_pool=self._pool)

        try:
            await self._wait_until_reachable()
        except (RedisError, OSError) as e:
            redis_logger.connection_error(e, redis_url)
            await self.close()
            return False

        self._available = True
        redis_logger.connection_success()
        return True

    async def _wait_until_reachable(self) -> None:
        """Ping with doubling backoff; re-raise the last error."""
        assert self._client is not None
        for attempt in range(1, CONNECT_ATTEMPTS + 1):
            try:
                await self._client.ping()  # type: ignore[misc]
                return
            except (RedisConnectionError, RedisTimeoutError) as e:
                if attempt == CONNECT_ATTEMPTS:
                    raise
                delay = CONNECT_BACKOFF_SECONDS * 2 ** (attempt - 1)
                logger.warning(
                    "Redis not reachable yet",
                    extra={"attempt": attempt, "delay_seconds": delay, "error": str(e)},
                )
                await asyncio.sleep(delay)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
        self._available = False

    async def _call(self, command: str, *args: Any, **kwargs: Any) -> Any | None:
        """Run one Redis command, or return None if Redis can't be used."""
        if self._client is None or self._circuit_breaker is None:
            redis_logger.graceful_fallback(command, "Redis not initialized")
            return None
        if not await self._circuit_breaker.can_execute():
            redis_logger.graceful_fallback(command, "Circuit breaker open")
            return None

        key = str(args[0]) if args else ""
        started = time.monotonic()
        try:
            result = await getattr(self._client, command)(*args, **kwargs)
        except RedisError as e:
            elapsed_ms = (time.monotonic() - started) * 1000
            redis_logger.operation(command, key, elapsed_ms, success=False)
            if isinstance(e, RedisConnectionError | RedisTimeoutError):
                redis_logger.connection_error(e, str(get_settings().redis_url))
            else:
                logger.error(
                    "Redis command failed",
                    extra={"command": command, "error_type": type(e).__name__},
                )
            await self._circuit_breaker.record_failure()
            return None

        redis_logger.operation(
            command, key, (time.monotonic() - started) * 1000, success=True
        )
        await self._circuit_breaker.record_success()
        return result

    async def get(self, key: str) -> bytes | None:
        return await self._call("get", key)

    async def set(self, key: str, value: str | bytes, ex: int | None = None) -> bool:
        if ex is None:
            return await self._call("set", key, value) is not None
        return await self._call("set", key, value, ex=ex) is not None

    async def delete(self, *keys: str) -> int | None:
        return await self._call("delete", *keys)

    async def incr(self, key: str) -> int | None:
        return await self._call("incr", key)

    async def expire(self, key: str, seconds: int) -> bool | None:
        return await self._call("expire", key, seconds)

    async def get_json(self, key: str) -> Any | None:
        """Decode a cached JSON value; unreadable entries count as a miss."""
        raw = await self.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError, UnicodeDecodeError):
            logger.warning("Discarding unreadable cache entry", extra={"key": key})
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> bool:
        return await self.set(key, json.dumps(value), ex=ttl_seconds)

    async def count_in_window(self, key: str, window_seconds: int) -> int | None:
        """Increment a window counter, arming its expiry on first use."""
        count = await self.incr(key)
        if count == 1:
            await self.expire(key, window_seconds)
        return count

    async def ping(self) -> bool:
        result = await self._call("ping")
        return result is True or result == b"PONG"

    async def check_health(self) -> bool:
        return self._available and await self.ping()


redis_manager = RedisManager()


async def get_redis() -> RedisManager:
    """FastAPI dependency returning the process-wide Redis manager."""
    return redis_manager
