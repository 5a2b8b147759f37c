"""Tests for the SQS queue consumer and the Lambda batch handler."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.database import DatabaseManager
from pagegen.core.redis import RedisManager
from pagegen.models.business import Business
from pagegen.models.generation_job import GenerationJob
from pagegen.services.job_fanout import JobFanoutService
from pagegen.services.job_pages import JobPageService
from pagegen.worker.queue_consumer import QueueConsumer, handle_event

from tests.worker.test_poller import FakeGenerator


@pytest.fixture
async def job_messages(
    db_session: AsyncSession, business: Business
) -> tuple[str, list[dict]]:
    """A fanned-out job and one message body per page."""
    job, _ = await JobFanoutService(db_session).create_job(
        business.id, "keyword-service-area"
    )
    pages, _ = await JobPageService(db_session).list_pages(job.id)
    await db_session.commit()
    messages = [
        {
            "job_id": job.id,
            "page_id": page.id,
            "business_id": business.id,
            "page_type": job.page_type,
            "keyword_language": page.keyword_language,
        }
        for page in pages
    ]
    return job.id, messages


@pytest.fixture
def sqs() -> MagicMock:
    client = MagicMock()
    client.queue_url = "https://sqs.test/pages"
    client.delete_message = AsyncMock()
    return client


@pytest.fixture
def consumer(
    sqs: MagicMock,
    mock_db_manager: DatabaseManager,
    mock_redis_manager: RedisManager,
) -> QueueConsumer:
    return QueueConsumer(sqs_client=sqs, generator=FakeGenerator(), worker_id="consumer-1")


def sqs_message(body: dict, message_id: str = "m-1") -> dict:
    return {"MessageId": message_id, "ReceiptHandle": f"rh-{message_id}", "Body": json.dumps(body)}


BROKEN_BODY = {"job_id": "job-x", "page_id": "broken"}


@pytest.fixture
def broken_page(consumer: QueueConsumer, monkeypatch: pytest.MonkeyPatch) -> None:
    """Processing raises for the page id in BROKEN_BODY."""
    process_message = consumer.process_message

    async def raise_for_broken(body: dict) -> str:
        if body["page_id"] == BROKEN_BODY["page_id"]:
            raise RuntimeError("database unavailable")
        return await process_message(body)

    monkeypatch.setattr(consumer, "process_message", raise_for_broken)


class TestProcessMessage:
    async def test_generates_and_completes_page(
        self,
        consumer: QueueConsumer,
        job_messages: tuple[str, list[dict]],
    ) -> None:
        _, messages = job_messages
        english = next(m for m in messages if m["keyword_language"] == "en")
        spanish = next(m for m in messages if m["keyword_language"] == "es")

        assert await consumer.process_message(english) == "completed"
        assert await consumer.process_message(spanish) == "failed"

    async def test_redelivered_message_is_skipped(
        self,
        consumer: QueueConsumer,
        job_messages: tuple[str, list[dict]],
    ) -> None:
        _, messages = job_messages

        await consumer.process_message(messages[0])

        assert await consumer.process_message(messages[0]) == "skipped"

    async def test_unknown_page_is_skipped(
        self,
        consumer: QueueConsumer,
        job_messages: tuple[str, list[dict]],
    ) -> None:
        job_id, _ = job_messages

        assert await consumer.process_message({"job_id": job_id, "page_id": "gone"}) == "skipped"

    async def test_all_pages_finalize_the_job(
        self,
        consumer: QueueConsumer,
        job_messages: tuple[str, list[dict]],
        async_session_factory,
    ) -> None:
        job_id, messages = job_messages

        for body in messages:
            await consumer.process_message(body)

        async with async_session_factory() as session:
            job = await session.get(GenerationJob, job_id)
        assert job.status == "completed"
        assert (job.completed_pages, job.failed_pages) == (4, 2)
        assert job.webhook_sent_at is not None


class TestHandleMessage:
    async def test_malformed_body_is_deleted(self, consumer: QueueConsumer) -> None:
        assert await consumer.handle_message({"MessageId": "m-1", "Body": "not json"}) is True
        assert await consumer.handle_message({"MessageId": "m-2"}) is True

    @pytest.mark.parametrize(
        "body",
        [["job-1", "page-1"], {"page_id": "p-1"}, {"job_id": "job-1", "page_id": ""}],
    )
    async def test_body_without_page_reference_is_deleted(
        self, consumer: QueueConsumer, body: object
    ) -> None:
        consumer.process_message = AsyncMock()

        assert await consumer.handle_message(sqs_message(body)) is True
        consumer.process_message.assert_not_awaited()

    @pytest.mark.usefixtures("broken_page")
    async def test_processing_error_keeps_message(self, consumer: QueueConsumer) -> None:
        message = sqs_message(BROKEN_BODY)

        assert await consumer.handle_message(message) is False

    @pytest.mark.usefixtures("broken_page")
    async def test_run_deletes_handled_messages(
        self,
        consumer: QueueConsumer,
        sqs: MagicMock,
        job_messages: tuple[str, list[dict]],
    ) -> None:
        _, messages = job_messages
        batches = [[sqs_message(messages[0], "m-1"), sqs_message(BROKEN_BODY, "m-2")]]

        async def receive_messages() -> list[dict]:
            if batches:
                return batches.pop()
            consumer.stop()
            return []

        sqs.receive_messages = AsyncMock(side_effect=receive_messages)

        await consumer.run()

        sqs.delete_message.assert_awaited_once_with("rh-m-1")


class TestHandleEvent:
    @pytest.mark.usefixtures("broken_page")
    async def test_reports_partial_batch_failures(
        self,
        consumer: QueueConsumer,
        job_messages: tuple[str, list[dict]],
    ) -> None:
        _, messages = job_messages
        event = {
            "Records": [
                {"messageId": "ok", "body": json.dumps(messages[0])},
                {"messageId": "broken", "body": json.dumps(BROKEN_BODY)},
            ]
        }

        response = await handle_event(event, consumer)

        assert response == {"batchItemFailures": [{"itemIdentifier": "broken"}]}

    async def test_empty_event(self, consumer: QueueConsumer) -> None:
        assert await handle_event({}, consumer) == {"batchItemFailures": []}
