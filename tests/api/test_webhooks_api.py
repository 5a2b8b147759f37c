"""Tests for the /api/v1/webhooks endpoints."""

import uuid

import pytest
from httpx import AsyncClient

from pagegen.services.webhook import ACTIVE_WEBHOOKS_CACHE_KEY

from tests.conftest import MockRedis

URL = "/api/v1/webhooks"


class TestWebhooksApi:
    async def test_create_defaults_to_all_events(self, async_client: AsyncClient) -> None:
        response = await async_client.post(URL, json={"url": "https://hooks.example.com/a"})

        assert response.status_code == 201
        assert response.json()["events"] == ["job.completed", "job.failed"]

    async def test_create_dedupes_events(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            URL,
            json={"url": "https://hooks.example.com/a", "events": ["job.failed", "job.failed"]},
        )

        assert response.json()["events"] == ["job.failed"]

    @pytest.mark.parametrize(
        "payload",
        [
            {"url": "ftp://hooks.example.com"},
            {"url": "https://hooks.example.com", "events": []},
            {"url": "https://hooks.example.com", "events": ["job.started"]},
        ],
    )
    async def test_invalid_webhooks_are_rejected(
        self, async_client: AsyncClient, payload: dict
    ) -> None:
        response = await async_client.post(URL, json=payload)

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_list_and_delete(self, async_client: AsyncClient) -> None:
        created = (
            await async_client.post(URL, json={"url": "https://hooks.example.com/a"})
        ).json()

        listed = await async_client.get(URL)
        deleted = await async_client.delete(f"{URL}/{created['id']}")
        after = await async_client.get(URL)

        assert listed.json()["total"] == 1
        assert deleted.status_code == 204
        assert after.json() == {"items": [], "total": 0}

    async def test_create_invalidates_active_cache(
        self, async_client: AsyncClient, mock_redis: MockRedis
    ) -> None:
        await mock_redis.set(ACTIVE_WEBHOOKS_CACHE_KEY, "[]")

        await async_client.post(URL, json={"url": "https://hooks.example.com/a"})

        assert await mock_redis.get(ACTIVE_WEBHOOKS_CACHE_KEY) is None

    async def test_delete_missing_webhook(self, async_client: AsyncClient) -> None:
        response = await async_client.delete(f"{URL}/{uuid.uuid4()}")

        assert response.status_code == 404
