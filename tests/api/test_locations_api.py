"""Tests for the /api/v1/businesses/{id}/locations endpoints."""

import uuid

from httpx import AsyncClient

from pagegen.models.business import Business


def locations_url(business_id: str) -> str:
    return f"/api/v1/businesses/{business_id}/locations"


class TestLocationsApi:
    async def test_create_active_location_links_service_area(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        response = await async_client.post(
            locations_url(business.id),
            json={"name": "Leesburg Store", "city": "Leesburg", "state": "VA"},
        )

        assert response.status_code == 201
        location = response.json()
        assert location["display_name"] == "Acme Plumbing (Leesburg)"

        areas = await async_client.get(f"/api/v1/businesses/{business.id}/service-areas")
        linked = [a for a in areas.json()["items"] if a["slug"] == "leesburg-va"]
        assert linked[0]["location_id"] == location["id"]

    async def test_invalid_status_is_rejected(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        response = await async_client.post(
            locations_url(business.id),
            json={"name": "Closed", "city": "Vienna", "state": "VA", "status": "closed"},
        )

        assert response.status_code == 422

    async def test_list_filters_and_headquarters_first(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        url = locations_url(business.id)
        await async_client.post(url, json={"name": "Vienna", "city": "Vienna", "state": "VA"})
        await async_client.post(
            url,
            json={"name": "HQ", "city": "Reston", "state": "VA", "is_headquarters": True},
        )
        await async_client.post(
            url,
            json={"name": "Bethesda", "city": "Bethesda", "state": "MD", "status": "upcoming"},
        )

        everything = (await async_client.get(url)).json()
        upcoming = (await async_client.get(url, params={"status": "upcoming"})).json()

        assert everything["total"] == 3
        assert everything["items"][0]["name"] == "HQ"
        assert [loc["name"] for loc in upcoming["items"]] == ["Bethesda"]

    async def test_stats(self, async_client: AsyncClient, business: Business) -> None:
        url = locations_url(business.id)
        await async_client.post(url, json={"name": "Vienna", "city": "Vienna", "state": "VA"})
        await async_client.post(
            url,
            json={"name": "Bethesda", "city": "Bethesda", "state": "MD", "status": "upcoming"},
        )

        response = await async_client.get(f"{url}/stats")

        assert response.json() == {
            "total": 2,
            "active": 1,
            "upcoming": 1,
            "by_state": {"VA": 1, "MD": 1},
            "by_country": {"US": 2},
        }

    async def test_bulk_import_reports_row_errors(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        response = await async_client.post(
            f"{locations_url(business.id)}/bulk",
            json={
                "locations": [
                    {"name": "Leesburg", "city": "Leesburg", "state": "VA"},
                    {"name": "No City", "state": "VA"},
                ]
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert (data["created"], data["failed"]) == (1, 1)
        assert data["errors"][0]["index"] == 1

    async def test_update_and_delete(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        url = locations_url(business.id)
        created = (
            await async_client.post(url, json={"name": "Vienna", "city": "Vienna", "state": "VA"})
        ).json()

        updated = await async_client.put(
            f"{url}/{created['id']}", json={"phone": "555-0199"}
        )
        deleted = await async_client.delete(f"{url}/{created['id']}")
        missing = await async_client.get(f"{url}/{created['id']}")

        assert updated.json()["phone"] == "555-0199"
        assert deleted.status_code == 204
        assert missing.status_code == 404

    async def test_unknown_business(self, async_client: AsyncClient) -> None:
        response = await async_client.get(locations_url(str(uuid.uuid4())))

        assert response.status_code == 404
