"""Ollama local LLM client.

Alternative generation backend for local runs. Speaks the non-streaming
/api/generate endpoint and returns the same CompletionResult as the Claude
client so the content generator can use either.
"""

import time
from typing import Any

import httpx

from pagegen.core.config import get_settings
from pagegen.core.logging import get_logger
from pagegen.integrations.claude import CompletionResult

logger = get_logger(__name__)

DEFAULT_OPTIONS: dict[str, Any] = {"temperature": 0.7, "num_ctx": 4096}


class OllamaClient:
    """Async client for an Ollama server."""

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self._model = model or settings.ollama_model
        self._timeout = timeout or settings.ollama_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def available(self) -> bool:
        return bool(self._base_url)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> CompletionResult:
        """Generate a completion. Never raises for transport or HTTP errors."""
        client = await self._get_client()
        options = dict(DEFAULT_OPTIONS)
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens:
            options["num_predict"] = max_tokens

        request_body: dict[str, Any] = {
            "model": self._model,
            "prompt": user_prompt,
            "stream": False,
            "options": options,
        }
        if system_prompt:
            request_body["system"] = system_prompt

        start_time = time.monotonic()
        logger.debug(
            "Ollama generate request",
            extra={"model": self._model, "prompt_length": len(user_prompt)},
        )
        try:
            response = await client.post("/api/generate", json=request_body)
        except httpx.TimeoutException:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.warning(
                "Ollama request timeout",
                extra={"model": self._model, "timeout_seconds": self._timeout},
            )
            return CompletionResult(
                success=False,
                error=f"Request timed out after {self._timeout}s",
                duration_ms=duration_ms,
            )
        except httpx.RequestError as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                "Ollama request failed",
                extra={
                    "model": self._model,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return CompletionResult(
                success=False, error=f"Request failed: {e}", duration_ms=duration_ms
            )

        duration_ms = (time.monotonic() - start_time) * 1000
        if response.status_code >= 400:
            logger.warning(
                "Ollama returned an error status",
                extra={"model": self._model, "status_code": response.status_code},
            )
            return CompletionResult(
                success=False,
                error=f"Ollama error ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

        data = response.json()
        return CompletionResult(
            success=True,
            text=data.get("response", ""),
            stop_reason=data.get("done_reason"),
            input_tokens=data.get("prompt_eval_count"),
            output_tokens=data.get("eval_count"),
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

    async def check_health(self) -> bool:
        """Return True when the server answers /api/tags."""
        client = await self._get_client()
        try:
            response = await client.get("/api/tags")
        except httpx.RequestError:
            return False
        return response.status_code == 200
