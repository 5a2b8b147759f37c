"""SQS queue consumer for job_dispatch_mode=sqs.

Each message names one page: {job_id, page_id, business_id, page_type,
request_id}. The consumer reads and writes the database directly and records
outcomes through JobPageService.complete(), the same path the HTTP complete
endpoint uses, so counters, job finalization and webhooks behave the same
in both dispatch modes.

A message is deleted once its page reaches a terminal state (or is skipped).
If processing raises, the message is left on the queue; SQS redelivers it
and the redrive policy moves it to the dead-letter queue after repeated
failures.

Entry points:
- QueueConsumer.run(): long-polling loop (pagegen-consumer)
- handle_event(event): Lambda-style SQS batch handler
"""

import asyncio
import json
import os
import signal
import socket
import sys
from typing import Any

from dotenv import load_dotenv

from pagegen.core.database import db_manager, session_scope
from pagegen.core.logging import generation_logger, get_logger, setup_logging
from pagegen.integrations.sqs import SQSClient, SQSError, get_sqs_client
from pagegen.schemas.business import BusinessResponse
from pagegen.schemas.job import CompleteRequest, JobPageResponse
from pagegen.schemas.prompt_template import PromptTemplateResponse
from pagegen.services.content_generation import (
    ContentGenerator,
    GenerationContext,
    GenerationError,
)
from pagegen.services.job_pages import JobPageService

logger = get_logger(__name__)

OUTCOME_SKIPPED = "skipped"
REQUIRED_KEYS = ("job_id", "page_id")


class QueueConsumer:
    """Consumes page messages and generates each page."""

    def __init__(
        self,
        sqs_client: SQSClient | None = None,
        generator: ContentGenerator | None = None,
        worker_id: str | None = None,
    ) -> None:
        self._sqs = sqs_client
        self._generator = generator
        self._worker_id = worker_id or f"sqs-{socket.gethostname()}-{os.getpid()}"
        self._stop_event = asyncio.Event()

    @property
    def sqs(self) -> SQSClient:
        if self._sqs is None:
            self._sqs = get_sqs_client()
        return self._sqs

    @property
    def generator(self) -> ContentGenerator:
        if self._generator is None:
            self._generator = ContentGenerator()
        return self._generator

    def stop(self) -> None:
        self._stop_event.set()

    async def process_message(self, body: dict[str, Any]) -> str:
        """Generate the page named by one message.

        Returns:
            The page's final status, or "skipped" for missing/terminal pages
        """
        job_id = str(body["job_id"])
        page_id = str(body["page_id"])

        async with session_scope() as session:
            service = JobPageService(session)
            page = await service.start_page(job_id, page_id, self._worker_id)
            if page is None:
                logger.info(
                    "Skipping message for missing or finished page",
                    extra={"job_id": job_id, "page_id": page_id},
                )
                return OUTCOME_SKIPPED

            job = await service.get_job(job_id)
            business, questionnaire, template = await service.load_page_context(job)
            context = GenerationContext(
                page=JobPageResponse.model_validate(page).model_dump(mode="json"),
                business=BusinessResponse.model_validate(business).model_dump(mode="json"),
                page_type=job.page_type,
                questionnaire=questionnaire.data if questionnaire is not None else {},
                template=(
                    PromptTemplateResponse.model_validate(template).model_dump(mode="json")
                    if template is not None
                    else None
                ),
            )

            try:
                generated = await self.generator.generate(context)
                outcome = CompleteRequest(
                    status="completed",
                    content=generated.content,
                    section_count=generated.section_count,
                    word_count=generated.word_count,
                    model_name=generated.model_name,
                    prompt_version=generated.prompt_version,
                    generation_duration_ms=generated.generation_duration_ms,
                    input_tokens=generated.input_tokens,
                    output_tokens=generated.output_tokens,
                )
            except GenerationError as e:
                logger.warning(
                    "Page generation failed",
                    extra={"job_id": job_id, "page_id": page_id, "error": str(e)},
                )
                outcome = CompleteRequest(status="failed", error_message=str(e))

            await service.complete(job_id, page_id, outcome)
            return outcome.status

    async def handle_message(self, message: dict[str, Any]) -> bool:
        """Process one raw SQS message. Returns True when it may be deleted."""
        message_id = message.get("MessageId")
        try:
            body = json.loads(message["Body"])
        except (KeyError, TypeError, json.JSONDecodeError):
            logger.error(
                "Discarding malformed queue message", extra={"message_id": message_id}
            )
            return True

        if not isinstance(body, dict) or not all(body.get(key) for key in REQUIRED_KEYS):
            logger.error(
                "Discarding queue message without job_id and page_id",
                extra={"message_id": message_id, "body_type": type(body).__name__},
            )
            return True

        try:
            outcome = await self.process_message(body)
        except Exception as e:
            logger.error(
                "Message processing failed, leaving it for redelivery",
                extra={
                    "message_id": message_id,
                    "job_id": body.get("job_id"),
                    "page_id": body.get("page_id"),
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
                exc_info=True,
            )
            return False

        logger.debug(
            "Message processed",
            extra={"message_id": message_id, "page_id": body.get("page_id"), "outcome": outcome},
        )
        return True

    async def run(self) -> None:
        """Long-poll the queue until stop() is called."""
        generation_logger.worker_event(
            "consumer_started", worker_id=self._worker_id, queue_url=self.sqs.queue_url
        )
        while not self._stop_event.is_set():
            try:
                messages = await self.sqs.receive_messages()
            except SQSError as e:
                logger.error(
                    "Failed to receive messages",
                    extra={"error": str(e), "operation": e.operation},
                )
                await asyncio.sleep(1.0)
                continue

            for message in messages:
                if self._stop_event.is_set():
                    break
                if await self.handle_message(message):
                    await self.sqs.delete_message(message["ReceiptHandle"])

        generation_logger.worker_event("consumer_stopped", worker_id=self._worker_id)

    async def close(self) -> None:
        if self._generator is not None:
            await self._generator.close()


async def handle_event(
    event: dict[str, Any], consumer: QueueConsumer | None = None
) -> dict[str, Any]:
    """Lambda-style SQS batch handler.

    Returns the partial batch response: records that should be retried are
    listed in batchItemFailures.
    """
    consumer = consumer or QueueConsumer()
    failures: list[dict[str, str]] = []
    for record in event.get("Records", []):
        message = {"MessageId": record.get("messageId"), "Body": record.get("body")}
        if not await consumer.handle_message(message):
            failures.append({"itemIdentifier": str(record.get("messageId"))})
    return {"batchItemFailures": failures}


def lambda_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Synchronous entry point for AWS Lambda."""

    async def _handle() -> dict[str, Any]:
        db_manager.init_db()
        consumer = QueueConsumer()
        try:
            return await handle_event(event, consumer)
        finally:
            await consumer.close()
            await db_manager.close()

    setup_logging()
    return asyncio.run(_handle())


async def _run_consumer() -> int:
    db_manager.init_db()
    consumer = QueueConsumer()
    if not consumer.sqs.available:
        logger.error("SQS_QUEUE_URL is not configured, exiting")
        await db_manager.close()
        return 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, consumer.stop)
        except (NotImplementedError, RuntimeError):
            # Signal handling not available (e.g., not in main thread)
            pass

    try:
        await consumer.run()
    finally:
        await consumer.close()
        await db_manager.close()
    return 0


def main() -> int:
    load_dotenv()
    setup_logging()
    return asyncio.run(_run_consumer())


if __name__ == "__main__":
    sys.exit(main())
