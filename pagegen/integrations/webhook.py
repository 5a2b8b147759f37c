"""Outbound delivery of job.completed / job.failed events.

Webhook targets are customer endpoints, so delivery is best effort: one
attempt by default (WEBHOOK_MAX_RETRIES raises it), a short timeout, and a
WebhookResult instead of an exception. 429 and 5xx responses, timeouts and
connection errors count against a shared circuit breaker so a dead
endpoint cannot stall job finalization; other 4xx responses do not.
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any

import httpx

from pagegen import __version__
from pagegen.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from pagegen.core.config import get_settings
from pagegen.core.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = f"pagegen-webhooks/{__version__}"


@dataclass
class WebhookResult:
    """Outcome of one delivery, after retries."""

    success: bool
    url: str
    status_code: int | None = None
    error: str | None = None
    duration_ms: float = 0.0
    retry_attempt: int = 0


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class WebhookClient:
    """POSTs JSON event payloads to subscriber URLs."""

    def __init__(
        self,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()

        self._timeout = timeout or settings.webhook_timeout
        self._max_retries = max(1, max_retries or settings.webhook_max_retries)
        self._retry_delay = (
            settings.webhook_retry_delay if retry_delay is None else retry_delay
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        self._circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.webhook_circuit_failure_threshold,
                recovery_timeout=settings.webhook_circuit_recovery_timeout,
            ),
            name="webhook",
        )

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(self, url: str, payload: dict[str, Any]) -> WebhookResult:
        """Deliver one event payload to url."""
        if not await self._circuit_breaker.can_execute():
            logger.warning("Webhook circuit open, skipping delivery", extra={"url": url[:100]})
            return WebhookResult(success=False, url=url, error="Circuit breaker is open")

        client = await self._get_client()
        body = json.dumps(payload, default=str)
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        event = payload.get("event")
        if event:
            headers["X-Pagegen-Event"] = str(event)

        started = time.monotonic()
        result = WebhookResult(success=False, url=url, error="Send failed after all retries")
        for attempt in range(self._max_retries):
            result, retryable = await self._attempt(client, url, body, headers)
            result.retry_attempt = attempt
            if not retryable or attempt == self._max_retries - 1:
                break
            delay = self._retry_delay * (2**attempt)
            logger.info(
                "Retrying webhook delivery",
                extra={"url": url[:100], "retry_attempt": attempt + 1, "delay_seconds": delay},
            )
            await asyncio.sleep(delay)

        result.duration_ms = (time.monotonic() - started) * 1000
        return result

    async def _attempt(
        self, client: httpx.AsyncClient, url: str, body: str, headers: dict[str, str]
    ) -> tuple[WebhookResult, bool]:
        """One POST. Returns (result, whether another attempt may help)."""
        try:
            response = await client.post(url, content=body, headers=headers)
        except httpx.TimeoutException:
            await self._circuit_breaker.record_failure()
            logger.warning(
                "Webhook timed out", extra={"url": url[:100], "timeout": self._timeout}
            )
            return (
                WebhookResult(success=False, url=url, error=f"Timeout after {self._timeout}s"),
                True,
            )
        except httpx.RequestError as e:
            await self._circuit_breaker.record_failure()
            logger.warning(
                "Webhook connection error",
                extra={"url": url[:100], "error_type": type(e).__name__},
            )
            return (
                WebhookResult(success=False, url=url, error=f"Connection error: {e}"),
                True,
            )

        status_code = response.status_code
        if _is_retryable_status(status_code):
            await self._circuit_breaker.record_failure()
            return (
                WebhookResult(
                    success=False,
                    url=url,
                    status_code=status_code,
                    error=f"Server error ({status_code})",
                ),
                True,
            )

        if status_code >= 400:
            logger.warning(
                "Webhook rejected by receiver",
                extra={
                    "url": url[:100],
                    "status_code": status_code,
                    "response_body": response.text[:200],
                },
            )
            return (
                WebhookResult(
                    success=False,
                    url=url,
                    status_code=status_code,
                    error=f"Client error ({status_code})",
                ),
                False,
            )

        await self._circuit_breaker.record_success()
        logger.debug("Webhook delivered", extra={"url": url[:100], "status_code": status_code})
        return WebhookResult(success=True, url=url, status_code=status_code), False


_webhook_client: WebhookClient | None = None


def get_webhook_client() -> WebhookClient:
    """Process-wide client, created on first use."""
    global _webhook_client
    if _webhook_client is None:
        _webhook_client = WebhookClient()
    return _webhook_client


async def close_webhook_client() -> None:
    global _webhook_client
    if _webhook_client is not None:
        await _webhook_client.close()
        _webhook_client = None
