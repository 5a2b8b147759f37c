"""Shared circuit breaker for outbound integrations.

Wraps the LLM, webhook, SQS and Redis clients. After failure_threshold
consecutive failures the circuit opens and calls are rejected. Once
recovery_timeout has elapsed a single probe is let through (half-open);
its outcome closes or re-opens the circuit.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum

from pagegen.core.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker configuration."""

    failure_threshold: int
    recovery_timeout: float


class CircuitBreaker:
    """Async-safe circuit breaker keyed by integration name."""

    def __init__(self, config: CircuitBreakerConfig, name: str = "default") -> None:
        self._config = config
        self._name = name
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def is_closed(self) -> bool:
        return self._state == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    @property
    def is_half_open(self) -> bool:
        return self._state == CircuitState.HALF_OPEN

    def _transition(self, new_state: CircuitState) -> None:
        previous = self._state
        self._state = new_state
        if new_state == CircuitState.OPEN:
            self._opened_at = time.monotonic()
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "circuit_name": self._name,
                    "previous_state": previous.value,
                    "failure_count": self._failure_count,
                    "recovery_timeout": self._config.recovery_timeout,
                },
            )
        else:
            logger.info(
                f"Circuit breaker {new_state.value}",
                extra={
                    "circuit_name": self._name,
                    "previous_state": previous.value,
                    "new_state": new_state.value,
                    "failure_count": self._failure_count,
                },
            )

    def _recovery_due(self) -> bool:
        if self._opened_at is None:
            return True
        return time.monotonic() - self._opened_at >= self._config.recovery_timeout

    async def can_execute(self) -> bool:
        """Return True if a call may proceed."""
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if not self._recovery_due():
                    return False
                self._transition(CircuitState.HALF_OPEN)
            return True

    async def record_success(self) -> None:
        """Record a successful call."""
        async with self._lock:
            self._failure_count = 0
            if self._state != CircuitState.CLOSED:
                self._opened_at = None
                self._transition(CircuitState.CLOSED)

    async def record_failure(self) -> None:
        """Record a failed call."""
        async with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._config.failure_threshold
            ):
                self._transition(CircuitState.OPEN)
            elif self._state == CircuitState.OPEN:
                self._opened_at = time.monotonic()

    async def reset(self) -> None:
        """Force the circuit closed and clear the failure count."""
        async with self._lock:
            self._failure_count = 0
            self._opened_at = None
            if self._state != CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)
