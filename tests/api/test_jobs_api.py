"""Tests for the generation job endpoints.

Covers job creation, the preview, and the claim / complete protocol
workers drive through the API.
"""

import uuid

import pytest
from httpx import AsyncClient

from pagegen.models.business import Business

WORKER = {"worker_id": "worker-1"}


def jobs_url(business_id: str) -> str:
    return f"/api/v1/businesses/{business_id}/jobs"


async def create_job(client: AsyncClient, business_id: str, page_type: str = "keyword-service-area") -> dict:
    response = await client.post(jobs_url(business_id), json={"page_type": page_type})
    assert response.status_code == 201
    return response.json()


async def claim(client: AsyncClient, job_id: str) -> dict:
    response = await client.post(f"/api/v1/jobs/{job_id}/claim", json=WORKER)
    assert response.status_code == 200
    return response.json()


async def complete(client: AsyncClient, job_id: str, page_id: str, **payload) -> dict:
    body = {"status": "completed", **payload}
    response = await client.post(
        f"/api/v1/jobs/{job_id}/pages/{page_id}/complete", json=body
    )
    assert response.status_code == 200
    return response.json()


class TestCreateJob:
    async def test_create_fans_out_pages(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        created = await create_job(async_client, business.id)

        assert created["total_pages_created"] == 6
        job = created["job"]
        assert job["status"] == "pending"
        assert job["total_pages"] == 6
        assert job["request_id"] is not None

        listed = await async_client.get(jobs_url(business.id))
        assert [j["id"] for j in listed.json()["items"]] == [job["id"]]

    async def test_alias_page_type(self, async_client: AsyncClient, business: Business) -> None:
        created = await create_job(async_client, business.id, page_type="service-area")

        assert created["job"]["page_type"] == "keyword-service-area"

    async def test_unknown_page_type(self, async_client: AsyncClient, business: Business) -> None:
        response = await async_client.post(
            jobs_url(business.id), json={"page_type": "city-pages"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_incomplete_questionnaire_is_rejected(
        self, async_client: AsyncClient
    ) -> None:
        business = (
            await async_client.post(
                "/api/v1/businesses", json={"name": "Bare Co", "industry": "Roofing"}
            )
        ).json()

        response = await async_client.post(
            jobs_url(business["id"]), json={"page_type": "keyword-service-area"}
        )

        assert response.status_code == 422
        assert response.json()["code"] == "INSUFFICIENT_DATA"
        jobs = await async_client.get(jobs_url(business["id"]))
        assert jobs.json()["total"] == 0

    async def test_unknown_business(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            jobs_url(str(uuid.uuid4())), json={"page_type": "keyword-service-area"}
        )

        assert response.status_code == 404


class TestPreview:
    async def test_preview_pages_and_summary(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        response = await async_client.get(
            f"{jobs_url(business.id)}/preview",
            params={"page_type": "keyword-service-area", "limit": 4},
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 4
        assert data["items"][0]["url_path"] == "/emergency-plumber/sterling-va"
        assert data["pagination"] == {"page": 1, "limit": 4, "total": 6, "total_pages": 2}
        assert data["summary"] == {
            "total_pages": 6,
            "unique_keywords": 3,
            "unique_service_areas": 2,
            "by_language": {"en": 4, "es": 2},
        }

    async def test_preview_writes_nothing(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        await async_client.get(
            f"{jobs_url(business.id)}/preview", params={"page_type": "keyword-service-area"}
        )

        jobs = await async_client.get(jobs_url(business.id))
        assert jobs.json()["total"] == 0

    async def test_limit_is_capped(self, async_client: AsyncClient, business: Business) -> None:
        response = await async_client.get(
            f"{jobs_url(business.id)}/preview",
            params={"page_type": "keyword-service-area", "limit": 500},
        )

        assert response.status_code == 422


class TestClaimAndComplete:
    async def test_claim_returns_generation_context(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]

        claimed = await claim(async_client, job_id)

        assert claimed["page"]["status"] == "processing"
        assert claimed["page"]["worker_id"] == "worker-1"
        assert claimed["page"]["attempts"] == 1
        assert claimed["business"]["name"] == "Acme Plumbing"
        assert claimed["questionnaire"]["completeness_score"] == 70
        assert claimed["template"] is None

        job = (await async_client.get(f"/api/v1/jobs/{job_id}")).json()
        assert job["status"] == "processing"
        assert (job["queued_count"], job["processing_count"]) == (5, 1)

    async def test_complete_records_metrics_and_cost(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]
        page_id = (await claim(async_client, job_id))["page"]["id"]

        result = await complete(
            async_client,
            job_id,
            page_id,
            content={"title": "Emergency Plumber", "sections": [{}, {}, {}]},
            model_name="claude-test",
            input_tokens=1000,
            output_tokens=1000,
        )

        assert result["page"]["status"] == "completed"
        assert result["page"]["section_count"] == 3
        assert result["page"]["cost_usd"] == pytest.approx(0.018)
        assert result["job"]["completed_pages"] == 1

    async def test_completing_twice_is_conflict(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]
        page_id = (await claim(async_client, job_id))["page"]["id"]
        await complete(async_client, job_id, page_id)

        response = await async_client.post(
            f"/api/v1/jobs/{job_id}/pages/{page_id}/complete", json={"status": "completed"}
        )

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_PAGE_STATE"

    async def test_invalid_completion_status(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]
        page_id = (await claim(async_client, job_id))["page"]["id"]

        response = await async_client.post(
            f"/api/v1/jobs/{job_id}/pages/{page_id}/complete", json={"status": "done"}
        )

        assert response.status_code == 422

    async def test_full_job_lifecycle(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]

        for _ in range(5):
            page_id = (await claim(async_client, job_id))["page"]["id"]
            await complete(async_client, job_id, page_id, input_tokens=1000, output_tokens=0)
        last_id = (await claim(async_client, job_id))["page"]["id"]

        drained = await async_client.post(f"/api/v1/jobs/{job_id}/claim", json=WORKER)
        assert drained.status_code == 409
        assert drained.json()["code"] == "NO_PAGES"

        await complete(async_client, job_id, last_id, status="failed", error_message="LLM down")

        job = (await async_client.get(f"/api/v1/jobs/{job_id}")).json()
        assert job["status"] == "completed"
        assert (job["completed_pages"], job["failed_pages"]) == (5, 1)
        assert (job["completed_count"], job["failed_count"]) == (5, 1)
        assert job["cost_total_usd"] == pytest.approx(5 * 0.003)
        assert job["completed_at"] is not None

        closed = await async_client.post(f"/api/v1/jobs/{job_id}/claim", json=WORKER)
        assert closed.status_code == 409
        assert closed.json()["code"] == "JOB_CLOSED"

        failed = await async_client.get(
            f"/api/v1/jobs/{job_id}/pages", params={"status": "failed"}
        )
        assert [p["error_message"] for p in failed.json()["items"]] == ["LLM down"]

    async def test_unknown_job(self, async_client: AsyncClient) -> None:
        response = await async_client.post(f"/api/v1/jobs/{uuid.uuid4()}/claim", json=WORKER)

        assert response.status_code == 404


class TestJobPages:
    async def test_pages_are_paginated(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]

        response = await async_client.get(
            f"/api/v1/jobs/{job_id}/pages", params={"page": 2, "limit": 4}
        )

        data = response.json()
        assert len(data["items"]) == 2
        assert data["pagination"] == {"page": 2, "limit": 4, "total": 6, "total_pages": 2}

    async def test_language_filter(self, async_client: AsyncClient, business: Business) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]

        response = await async_client.get(
            f"/api/v1/jobs/{job_id}/pages", params={"language": "es"}
        )

        assert {p["keyword_slug"] for p in response.json()["items"]} == {"plomero"}

    async def test_invalid_status_filter(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]

        response = await async_client.get(
            f"/api/v1/jobs/{job_id}/pages", params={"status": "archived"}
        )

        assert response.status_code == 400


class TestReleaseStale:
    async def test_fresh_claims_are_kept(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]
        await claim(async_client, job_id)

        response = await async_client.post(f"/api/v1/jobs/{job_id}/release-stale")

        assert response.json() == {"released": 0, "older_than_minutes": 5}

    async def test_threshold_must_be_positive(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        job_id = (await create_job(async_client, business.id))["job"]["id"]

        response = await async_client.post(
            f"/api/v1/jobs/{job_id}/release-stale", params={"older_than_minutes": 0}
        )

        assert response.status_code == 422
