"""SQS integration client with circuit breaker pattern.

Features:
- Boto3-based SQS client with LocalStack support via endpoint_url
- Circuit breaker for fault tolerance
- Retry logic with exponential backoff
- Batched sends (SendMessageBatch accepts at most 10 entries)

ERROR LOGGING REQUIREMENTS:
- Log all SQS operations with queue, operation, timing
- Log and handle: timeouts, auth failures, connection errors
- Include retry attempt number in logs
- Never log credentials
"""

import asyncio
import json
import time
from collections.abc import Callable
from typing import Any

import boto3
from botocore.config import Config as BotoConfig  # type: ignore[import-not-found]
from botocore.exceptions import (  # type: ignore[import-not-found]
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
)

from pagegen.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from pagegen.core.config import get_settings
from pagegen.core.logging import get_logger

logger = get_logger(__name__)

SEND_BATCH_SIZE = 10
AUTH_ERROR_CODES = frozenset(
    {"AccessDenied", "InvalidClientTokenId", "SignatureDoesNotMatch"}
)


class SQSError(Exception):
    """Base exception for SQS errors."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class SQSAuthError(SQSError):
    """Raised when SQS authentication fails."""

    pass


class SQSCircuitOpenError(SQSError):
    """Raised when circuit breaker is open."""

    pass


class SQSClient:
    """Client for the page work queue."""

    def __init__(
        self,
        queue_url: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        client: Any | None = None,
    ) -> None:
        """Initialize SQS client.

        Args:
            queue_url: Queue URL. Defaults to settings.
            region: AWS region. Defaults to settings.
            endpoint_url: Custom endpoint for LocalStack. Defaults to settings.
            access_key: AWS access key. Defaults to settings (or the boto3 chain).
            secret_key: AWS secret key. Defaults to settings (or the boto3 chain).
            timeout: Operation timeout in seconds. Defaults to settings.
            max_retries: Maximum attempts. Defaults to settings.
            retry_delay: Base delay between retries. Defaults to settings.
            client: Pre-built boto3 client (used by tests).
        """
        settings = get_settings()

        self._queue_url = queue_url or settings.sqs_queue_url
        self._region = region or settings.aws_region
        self._endpoint_url = endpoint_url or settings.aws_endpoint_url
        self._access_key = access_key or settings.aws_access_key_id
        self._secret_key = secret_key or settings.aws_secret_access_key
        self._timeout = timeout or settings.sqs_timeout
        self._max_retries = max_retries or settings.sqs_max_retries
        self._retry_delay = (
            retry_delay if retry_delay is not None else settings.sqs_retry_delay
        )

        self._circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.sqs_circuit_failure_threshold,
                recovery_timeout=settings.sqs_circuit_recovery_timeout,
            ),
            name="sqs",
        )

        # boto3 client (created lazily)
        self._client: Any | None = client

    @property
    def available(self) -> bool:
        """Check if a queue is configured."""
        return bool(self._queue_url)

    @property
    def queue_url(self) -> str | None:
        return self._queue_url

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    def _get_client(self) -> Any:
        """Get or create the boto3 SQS client."""
        if self._client is None:
            boto_config = BotoConfig(
                connect_timeout=self._timeout,
                read_timeout=self._timeout,
                retries={"max_attempts": 0},  # We handle retries ourselves
            )

            client_kwargs: dict[str, Any] = {
                "service_name": "sqs",
                "region_name": self._region,
                "config": boto_config,
            }
            if self._access_key and self._secret_key:
                client_kwargs["aws_access_key_id"] = self._access_key
                client_kwargs["aws_secret_access_key"] = self._secret_key
            if self._endpoint_url:
                client_kwargs["endpoint_url"] = self._endpoint_url

            self._client = boto3.client(**client_kwargs)

        return self._client

    async def _execute_with_retry(
        self,
        operation: str,
        func: Callable[[], Any],
    ) -> Any:
        """Execute an SQS operation with retry logic and circuit breaker.

        Raises:
            SQSCircuitOpenError: If circuit breaker is open
            SQSAuthError: If authentication fails
            SQSError: For other errors once retries are exhausted
        """
        if not self.available:
            raise SQSError("SQS not configured (missing queue url)", operation)

        if not await self._circuit_breaker.can_execute():
            logger.warning(
                f"SQS {operation} blocked by circuit breaker",
                extra={"sqs_operation": operation},
            )
            raise SQSCircuitOpenError("Circuit breaker is open", operation)

        last_error: Exception | None = None

        for attempt in range(self._max_retries):
            start_time = time.monotonic()
            try:
                logger.debug(
                    f"SQS {operation} started",
                    extra={"sqs_operation": operation, "retry_attempt": attempt},
                )

                # Run sync boto3 operation in thread pool
                loop = asyncio.get_event_loop()
                result: Any = await loop.run_in_executor(None, func)

                duration_ms = (time.monotonic() - start_time) * 1000
                logger.debug(
                    f"SQS {operation} completed",
                    extra={
                        "sqs_operation": operation,
                        "duration_ms": round(duration_ms, 2),
                    },
                )
                await self._circuit_breaker.record_success()
                return result

            except ClientError as e:
                duration_ms = (time.monotonic() - start_time) * 1000
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                error_message = e.response.get("Error", {}).get("Message", str(e))
                logger.error(
                    f"SQS {operation} failed: {error_message}",
                    extra={
                        "sqs_operation": operation,
                        "duration_ms": round(duration_ms, 2),
                        "error_type": f"ClientError:{error_code}",
                        "retry_attempt": attempt,
                    },
                )
                await self._circuit_breaker.record_failure()

                if error_code in AUTH_ERROR_CODES:
                    raise SQSAuthError(
                        f"Authentication failed: {error_message}", operation
                    ) from e

                last_error = SQSError(error_message, operation)

            except (EndpointConnectionError, BotoCoreError) as e:
                duration_ms = (time.monotonic() - start_time) * 1000
                logger.error(
                    f"SQS {operation} failed: {e}",
                    extra={
                        "sqs_operation": operation,
                        "duration_ms": round(duration_ms, 2),
                        "error_type": type(e).__name__,
                        "retry_attempt": attempt,
                    },
                )
                await self._circuit_breaker.record_failure()
                last_error = SQSError(str(e), operation)

            if attempt < self._max_retries - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(
                    f"SQS {operation} attempt {attempt + 1} failed, "
                    f"retrying in {delay}s",
                    extra={
                        "sqs_operation": operation,
                        "attempt": attempt + 1,
                        "max_retries": self._max_retries,
                        "delay_seconds": delay,
                    },
                )
                await asyncio.sleep(delay)

        raise last_error or SQSError(f"SQS {operation} failed", operation)

    async def send_page_messages(self, messages: list[dict[str, Any]]) -> int:
        """Send one message per page, in batches of ten.

        Args:
            messages: Message bodies ({job_id, page_id, business_id, ...})

        Returns:
            Number of messages accepted by the queue
        """
        client = self._get_client()
        sent = 0

        for start in range(0, len(messages), SEND_BATCH_SIZE):
            batch = messages[start : start + SEND_BATCH_SIZE]
            entries = [
                {"Id": str(index), "MessageBody": json.dumps(body, default=str)}
                for index, body in enumerate(batch)
            ]

            def _send(entries: list[dict[str, str]] = entries) -> Any:
                return client.send_message_batch(
                    QueueUrl=self._queue_url, Entries=entries
                )

            response = await self._execute_with_retry("send_message_batch", _send)
            failed = response.get("Failed", [])
            if failed:
                logger.warning(
                    "SQS batch partially failed",
                    extra={
                        "failed_count": len(failed),
                        "batch_size": len(batch),
                        "failed_ids": [f.get("Id") for f in failed],
                    },
                )
            sent += len(response.get("Successful", []))

        logger.info(
            "Page messages enqueued",
            extra={"sent": sent, "total": len(messages)},
        )
        return sent

    async def receive_messages(
        self, max_messages: int = 10, wait_time_seconds: int | None = None
    ) -> list[dict[str, Any]]:
        """Long-poll for messages. Returns raw SQS message dicts."""
        settings = get_settings()
        client = self._get_client()
        wait = (
            wait_time_seconds
            if wait_time_seconds is not None
            else settings.sqs_wait_time_seconds
        )

        def _receive() -> Any:
            return client.receive_message(
                QueueUrl=self._queue_url,
                MaxNumberOfMessages=min(max_messages, SEND_BATCH_SIZE),
                WaitTimeSeconds=wait,
            )

        response = await self._execute_with_retry("receive_message", _receive)
        messages: list[dict[str, Any]] = response.get("Messages", [])
        return messages

    async def delete_message(self, receipt_handle: str) -> None:
        """Delete a processed message."""
        client = self._get_client()

        def _delete() -> Any:
            return client.delete_message(
                QueueUrl=self._queue_url, ReceiptHandle=receipt_handle
            )

        await self._execute_with_retry("delete_message", _delete)


# Global SQS client instance
sqs_client: SQSClient | None = None


def get_sqs_client() -> SQSClient:
    """Get or create the global SQS client."""
    global sqs_client
    if sqs_client is None:
        sqs_client = SQSClient()
        if sqs_client.available:
            logger.info("SQS client initialized")
        else:
            logger.info("SQS not configured (missing queue url)")
    return sqs_client
