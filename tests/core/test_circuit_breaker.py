"""Tests for the shared CircuitBreaker.

- Starts CLOSED
- Opens after failure_threshold consecutive failures
- Rejects calls while OPEN, then lets one probe through (HALF_OPEN)
- Probe success closes it, probe failure re-opens it
"""

from unittest.mock import patch

import pytest

from pagegen.core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)


def make_breaker(threshold: int = 3, recovery: float = 30.0) -> CircuitBreaker:
    return CircuitBreaker(
        CircuitBreakerConfig(failure_threshold=threshold, recovery_timeout=recovery),
        name="test",
    )


class TestCircuitBreakerInitialState:
    def test_initial_state_is_closed(self) -> None:
        cb = make_breaker()

        assert cb.state == CircuitState.CLOSED
        assert cb.is_closed is True
        assert cb.is_open is False
        assert cb.failure_count == 0
        assert cb.name == "test"

    async def test_closed_circuit_allows_calls(self) -> None:
        cb = make_breaker()

        assert await cb.can_execute() is True


class TestCircuitBreakerOpens:
    async def test_opens_after_reaching_threshold(self) -> None:
        cb = make_breaker(threshold=3)

        await cb.record_failure()
        await cb.record_failure()
        assert cb.is_closed is True

        await cb.record_failure()
        assert cb.is_open is True
        assert await cb.can_execute() is False

    async def test_success_resets_failure_count(self) -> None:
        cb = make_breaker(threshold=3)

        await cb.record_failure()
        await cb.record_failure()
        await cb.record_success()
        await cb.record_failure()

        assert cb.failure_count == 1
        assert cb.is_closed is True


class TestCircuitBreakerRecovery:
    async def test_half_open_after_recovery_timeout(self) -> None:
        cb = make_breaker(threshold=1, recovery=30.0)

        with patch("pagegen.core.circuit_breaker.time.monotonic", return_value=100.0):
            await cb.record_failure()
        assert cb.is_open is True

        with patch("pagegen.core.circuit_breaker.time.monotonic", return_value=131.0):
            assert await cb.can_execute() is True
        assert cb.is_half_open is True

    async def test_probe_success_closes_circuit(self) -> None:
        cb = make_breaker(threshold=1, recovery=0.0)
        await cb.record_failure()
        assert await cb.can_execute() is True

        await cb.record_success()

        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    async def test_probe_failure_reopens_circuit(self) -> None:
        cb = make_breaker(threshold=1, recovery=0.0)
        await cb.record_failure()
        assert await cb.can_execute() is True

        await cb.record_failure()

        assert cb.state == CircuitState.OPEN

    async def test_still_open_before_timeout(self) -> None:
        cb = make_breaker(threshold=1, recovery=30.0)

        with patch("pagegen.core.circuit_breaker.time.monotonic", return_value=100.0):
            await cb.record_failure()
        with patch("pagegen.core.circuit_breaker.time.monotonic", return_value=110.0):
            assert await cb.can_execute() is False

    async def test_reset_closes_circuit(self) -> None:
        cb = make_breaker(threshold=1)
        await cb.record_failure()

        await cb.reset()

        assert cb.is_closed is True
        assert cb.failure_count == 0


@pytest.mark.parametrize("threshold", [1, 5])
async def test_threshold_is_respected(threshold: int) -> None:
    cb = make_breaker(threshold=threshold)
    for _ in range(threshold - 1):
        await cb.record_failure()
    assert cb.is_closed is True

    await cb.record_failure()
    assert cb.is_open is True
