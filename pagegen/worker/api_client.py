"""HTTP client the polling worker uses to talk to the pagegen API.

Features:
- Bearer token auth with the shared API token
- claim_page returns None on 409 (job closed or nothing to claim)
- Every other non-2xx response or transport failure raises WorkerApiError

ERROR LOGGING REQUIREMENTS:
- Log every request with method, path, status and timing
- Never log the API token
"""

import time
from typing import Any

import httpx

from pagegen.core.config import get_settings
from pagegen.core.logging import get_logger

logger = get_logger(__name__)


class WorkerApiError(Exception):
    """Raised when an API call from the worker fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WorkerApiClient:
    """Async client for the claim/complete API."""

    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.worker_api_url).rstrip("/")
        self._api_token = api_token if api_token is not None else settings.api_token
        self._timeout = timeout or settings.worker_request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._api_token:
                headers["Authorization"] = f"Bearer {self._api_token}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        client = await self._get_client()
        start_time = time.monotonic()
        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.warning("API request timed out", extra={"method": method, "path": path})
            raise WorkerApiError(f"Request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            logger.warning(
                "API request failed",
                extra={"method": method, "path": path, "error": str(e)},
            )
            raise WorkerApiError(f"Request failed: {e}") from e

        logger.debug(
            "API request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
            message = body.get("error") or response.text
        except ValueError:
            message = response.text
        raise WorkerApiError(
            f"{action} failed ({response.status_code}): {message}",
            status_code=response.status_code,
        )

    async def claim_page(self, job_id: str, worker_id: str) -> dict[str, Any] | None:
        """Claim the next page. None when the API answers 409."""
        response = await self._request(
            "POST", f"/api/v1/jobs/{job_id}/claim", json={"worker_id": worker_id}
        )
        if response.status_code == httpx.codes.CONFLICT:
            return None
        self._raise_for_status(response, "Claim")
        claimed: dict[str, Any] = response.json()
        return claimed

    async def complete_page(
        self, job_id: str, page_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        response = await self._request(
            "POST", f"/api/v1/jobs/{job_id}/pages/{page_id}/complete", json=payload
        )
        self._raise_for_status(response, "Complete")
        result: dict[str, Any] = response.json()
        return result

    async def get_job(self, job_id: str) -> dict[str, Any]:
        response = await self._request("GET", f"/api/v1/jobs/{job_id}")
        self._raise_for_status(response, "Get job")
        job: dict[str, Any] = response.json()
        return job

    async def health_check(self) -> bool:
        try:
            response = await self._request("GET", "/health")
        except WorkerApiError:
            return False
        return response.is_success
