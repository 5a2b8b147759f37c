"""Tests for health endpoints, request logging and structured error responses.

Every response carries an X-Request-ID header, and every error body has
the shape {"error": str, "code": str, "request_id": str}.
"""

import json
import uuid

from fastapi import Request
from httpx import AsyncClient

from pagegen.core.exceptions import NotFoundError


class TestHealthEndpoints:
    async def test_health(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_database_health(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health/db")

        assert response.json() == {"status": "ok", "database": True}

    async def test_redis_health(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health/redis")

        data = response.json()
        assert data["status"] == "ok"
        assert data["redis"] is True
        assert data["circuit_breaker"] == "closed"

    async def test_scheduler_health_when_disabled(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health/scheduler")

        data = response.json()
        assert data["running"] is False
        assert data["status"] in {"not_initialized", "degraded"}


class TestRequestLogging:
    async def test_responses_have_request_id(self, async_client: AsyncClient) -> None:
        for endpoint in ("/health", "/api/v1/businesses"):
            response = await async_client.get(endpoint)

            assert len(response.headers["X-Request-ID"]) == 36

    async def test_request_id_is_unique_per_request(self, async_client: AsyncClient) -> None:
        first = await async_client.get("/health")
        second = await async_client.get("/health")

        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]


class TestStructuredErrors:
    async def test_not_found(self, async_client: AsyncClient) -> None:
        missing = str(uuid.uuid4())

        response = await async_client.get(f"/api/v1/businesses/{missing}")

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "NOT_FOUND"
        assert missing in data["error"]
        assert data["request_id"] == response.headers["X-Request-ID"]

    async def test_validation_error(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/v1/businesses", json={"industry": "Plumbing"})

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert "name" in data["error"]
        assert data["request_id"] == response.headers["X-Request-ID"]

    async def test_invalid_query_parameter(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/v1/businesses", params={"limit": 0})

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_error_outside_middleware_reports_unknown_request_id(self) -> None:
        from pagegen.main import handle_pagegen_error

        request = Request({"type": "http", "method": "GET", "path": "/x", "headers": []})

        response = await handle_pagegen_error(request, NotFoundError("Business", "b-1"))

        assert response.status_code == 404
        assert json.loads(response.body) == {
            "error": "Business not found: b-1",
            "code": "NOT_FOUND",
            "request_id": "unknown",
        }
