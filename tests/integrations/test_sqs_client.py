"""Unit tests for the SQS page queue client.

The boto3 client is replaced with a MagicMock.
"""

import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from pagegen.integrations.sqs import SQSAuthError, SQSClient, SQSError

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/pages"


@pytest.fixture
def mock_boto_client() -> MagicMock:
    client = MagicMock()
    client.send_message_batch.side_effect = lambda QueueUrl, Entries: {
        "Successful": [{"Id": entry["Id"]} for entry in Entries],
        "Failed": [],
    }
    return client


@pytest.fixture
def sqs_client(mock_boto_client: MagicMock) -> SQSClient:
    return SQSClient(
        queue_url=QUEUE_URL,
        max_retries=2,
        retry_delay=0.0,
        client=mock_boto_client,
    )


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, "SendMessageBatch")


class TestSQSClient:
    async def test_sends_in_batches_of_ten(
        self, sqs_client: SQSClient, mock_boto_client: MagicMock
    ) -> None:
        messages = [{"job_id": "job-1", "page_id": f"page-{i}"} for i in range(23)]

        sent = await sqs_client.send_page_messages(messages)

        assert sent == 23
        batches = [
            call.kwargs["Entries"] for call in mock_boto_client.send_message_batch.call_args_list
        ]
        assert [len(batch) for batch in batches] == [10, 10, 3]
        assert json.loads(batches[2][0]["MessageBody"]) == {
            "job_id": "job-1",
            "page_id": "page-20",
        }
        assert mock_boto_client.send_message_batch.call_args.kwargs["QueueUrl"] == QUEUE_URL

    async def test_partial_batch_failure_counts_successes(
        self, sqs_client: SQSClient, mock_boto_client: MagicMock
    ) -> None:
        mock_boto_client.send_message_batch.side_effect = None
        mock_boto_client.send_message_batch.return_value = {
            "Successful": [{"Id": "0"}],
            "Failed": [{"Id": "1", "Code": "InternalError"}],
        }

        sent = await sqs_client.send_page_messages([{"page_id": "a"}, {"page_id": "b"}])

        assert sent == 1

    async def test_auth_error_is_not_retried(
        self, sqs_client: SQSClient, mock_boto_client: MagicMock
    ) -> None:
        mock_boto_client.send_message_batch.side_effect = client_error("AccessDenied")

        with pytest.raises(SQSAuthError):
            await sqs_client.send_page_messages([{"page_id": "a"}])

        assert mock_boto_client.send_message_batch.call_count == 1

    async def test_other_errors_are_retried_then_raised(
        self, sqs_client: SQSClient, mock_boto_client: MagicMock
    ) -> None:
        mock_boto_client.send_message_batch.side_effect = EndpointConnectionError(
            endpoint_url=QUEUE_URL
        )

        with pytest.raises(SQSError):
            await sqs_client.send_page_messages([{"page_id": "a"}])

        assert mock_boto_client.send_message_batch.call_count == 2

    async def test_missing_queue_url(self, mock_boto_client: MagicMock) -> None:
        client = SQSClient(queue_url=None, client=mock_boto_client)

        assert client.available is False
        with pytest.raises(SQSError):
            await client.send_page_messages([{"page_id": "a"}])

    async def test_receive_and_delete(
        self, sqs_client: SQSClient, mock_boto_client: MagicMock
    ) -> None:
        mock_boto_client.receive_message.return_value = {
            "Messages": [{"ReceiptHandle": "rh-1", "Body": "{}"}]
        }

        messages = await sqs_client.receive_messages(max_messages=25, wait_time_seconds=0)
        await sqs_client.delete_message("rh-1")

        assert messages == [{"ReceiptHandle": "rh-1", "Body": "{}"}]
        assert mock_boto_client.receive_message.call_args.kwargs["MaxNumberOfMessages"] == 10
        mock_boto_client.delete_message.assert_called_once_with(
            QueueUrl=QUEUE_URL, ReceiptHandle="rh-1"
        )

    async def test_empty_receive(
        self, sqs_client: SQSClient, mock_boto_client: MagicMock
    ) -> None:
        mock_boto_client.receive_message.return_value = {}

        assert await sqs_client.receive_messages(wait_time_seconds=0) == []
