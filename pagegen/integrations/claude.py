"""Claude Messages API client used to write page content.

One call to complete() sends a single user prompt (plus an optional system
prompt) and returns a CompletionResult. API failures never raise: they come
back as success=False with a short error string, which the content
generator records on the page.

Retry policy per attempt outcome:
- 5xx, timeouts and transport errors back off exponentially
- 429 waits for Retry-After when the server sends one (up to a minute)
- 401/403 and other 4xx return immediately

Every failed attempt counts against the circuit breaker; while it is open
calls fail fast with "Circuit breaker is open". API keys are never logged.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx

from pagegen.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from pagegen.core.config import get_settings
from pagegen.core.logging import claude_logger, get_logger

logger = get_logger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com"
ANTHROPIC_API_VERSION = "2023-06-01"
MESSAGES_PATH = "/v1/messages"
MAX_RETRY_AFTER_SECONDS = 60.0


@dataclass
class CompletionResult:
    """Result of an LLM completion request."""

    success: bool
    text: str | None = None
    stop_reason: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    error: str | None = None
    status_code: int | None = None
    duration_ms: float = 0.0
    request_id: str | None = None


def _error_message(response: httpx.Response) -> str:
    """Pull error.message out of an Anthropic error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or "Client error"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return str(body)


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds <= MAX_RETRY_AFTER_SECONDS else None


class ClaudeClient:
    """Async client for the Claude Messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Unset arguments fall back to the CLAUDE_* settings.

        Args:
            api_key: Anthropic API key
            model: Model name sent with every request
            timeout: Per-request timeout in seconds
            max_retries: Attempts per completion, including the first
            retry_delay: Base backoff delay in seconds
            max_tokens: Default response token cap
            temperature: Default sampling temperature
            transport: httpx transport override (tests use MockTransport)
        """
        settings = get_settings()

        self._api_key = api_key or settings.anthropic_api_key
        self._model = model or settings.claude_model
        self._timeout = timeout or settings.claude_timeout
        self._max_retries = max(1, max_retries or settings.claude_max_retries)
        self._retry_delay = (
            settings.claude_retry_delay if retry_delay is None else retry_delay
        )
        self._max_tokens = max_tokens or settings.claude_max_tokens
        self._temperature = (
            settings.claude_temperature if temperature is None else temperature
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        self._circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.claude_circuit_failure_threshold,
                recovery_timeout=settings.claude_circuit_recovery_timeout,
            ),
            name="claude",
        )

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    @property
    def model(self) -> str:
        return self._model

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=ANTHROPIC_API_URL,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "anthropic-version": ANTHROPIC_API_VERSION,
                    "x-api-key": self._api_key or "",
                },
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _backoff(self, attempt: int) -> float:
        return self._retry_delay * (2**attempt)

    def _request_body(
        self,
        user_prompt: str,
        system_prompt: str | None,
        max_tokens: int | None,
        temperature: float | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            body["system"] = system_prompt
        return body

    async def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> CompletionResult:
        """Generate a completion, retrying transient failures."""
        if not self.available:
            return CompletionResult(
                success=False, error="Claude not configured (missing API key)"
            )
        if not await self._circuit_breaker.can_execute():
            claude_logger.graceful_fallback("complete", "Circuit breaker open")
            return CompletionResult(success=False, error="Circuit breaker is open")

        client = await self._get_client()
        body = self._request_body(user_prompt, system_prompt, max_tokens, temperature)
        started = time.monotonic()

        result = CompletionResult(success=False, error="Request failed after all retries")
        for attempt in range(self._max_retries):
            claude_logger.api_call_start(self._model, len(user_prompt), retry_attempt=attempt)
            result, wait = await self._attempt(client, body, attempt)
            if wait is None or attempt == self._max_retries - 1:
                break
            logger.warning(
                "Retrying Claude request",
                extra={
                    "attempt": attempt + 1,
                    "max_retries": self._max_retries,
                    "delay_seconds": wait,
                    "error": result.error,
                },
            )
            await asyncio.sleep(wait)

        result.duration_ms = (time.monotonic() - started) * 1000
        return result

    async def _attempt(
        self, client: httpx.AsyncClient, body: dict[str, Any], attempt: int
    ) -> tuple[CompletionResult, float | None]:
        """Send one request.

        Returns:
            Tuple of (result, seconds to wait before retrying or None if final)
        """
        attempt_started = time.monotonic()
        try:
            response = await client.post(MESSAGES_PATH, json=body)
        except httpx.TimeoutException:
            claude_logger.timeout(self._model, self._timeout)
            await self._circuit_breaker.record_failure()
            return (
                CompletionResult(
                    success=False, error=f"Request timed out after {self._timeout}s"
                ),
                self._backoff(attempt),
            )
        except httpx.RequestError as e:
            claude_logger.api_call_error(
                self._model,
                (time.monotonic() - attempt_started) * 1000,
                None,
                str(e),
                type(e).__name__,
                retry_attempt=attempt,
            )
            await self._circuit_breaker.record_failure()
            return (
                CompletionResult(success=False, error=f"Request failed: {e}"),
                self._backoff(attempt),
            )

        duration_ms = (time.monotonic() - attempt_started) * 1000
        status_code = response.status_code
        request_id = response.headers.get("request-id")

        def failure(error: str) -> CompletionResult:
            return CompletionResult(
                success=False,
                error=error,
                status_code=status_code,
                request_id=request_id,
            )

        if status_code == 429:
            wait = _retry_after(response)
            claude_logger.rate_limit(self._model, retry_after=wait)
            await self._circuit_breaker.record_failure()
            return failure("Rate limit exceeded"), wait

        if status_code in (401, 403):
            claude_logger.auth_failure(status_code)
            await self._circuit_breaker.record_failure()
            return failure(f"Authentication failed ({status_code})"), None

        if status_code >= 500:
            error = f"Server error ({status_code})"
            claude_logger.api_call_error(
                self._model,
                duration_ms,
                status_code,
                error,
                "ServerError",
                retry_attempt=attempt,
                request_id=request_id,
            )
            await self._circuit_breaker.record_failure()
            return failure(error), self._backoff(attempt)

        if status_code >= 400:
            message = _error_message(response)
            claude_logger.api_call_error(
                self._model,
                duration_ms,
                status_code,
                message,
                "ClientError",
                retry_attempt=attempt,
                request_id=request_id,
            )
            return failure(f"Client error ({status_code}): {message}"), None

        return await self._parse_success(response, duration_ms, request_id), None

    async def _parse_success(
        self, response: httpx.Response, duration_ms: float, request_id: str | None
    ) -> CompletionResult:
        data = response.json()
        text = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type", "text") == "text"
        )
        usage = data.get("usage") or {}
        input_tokens = usage.get("input_tokens")
        output_tokens = usage.get("output_tokens")

        claude_logger.api_call_success(
            self._model,
            duration_ms,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            request_id=request_id,
        )
        claude_logger.response_body(self._model, text, duration_ms)
        if input_tokens and output_tokens:
            claude_logger.token_usage(self._model, input_tokens, output_tokens)
        await self._circuit_breaker.record_success()

        return CompletionResult(
            success=True,
            text=text,
            stop_reason=data.get("stop_reason"),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            status_code=response.status_code,
            request_id=request_id,
        )
