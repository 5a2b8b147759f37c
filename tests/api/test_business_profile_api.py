"""Tests for the business hours and social link endpoints."""

from httpx import AsyncClient

from pagegen.models.business import Business


class TestHoursApi:
    async def test_put_then_get(self, async_client: AsyncClient, business: Business) -> None:
        url = f"/api/v1/businesses/{business.id}/hours"
        response = await async_client.put(
            url,
            json={
                "hours": [
                    {"day_of_week": "Saturday", "opens": "09:00", "closes": "13:00"},
                    {"day_of_week": "Monday", "opens": "08:00", "closes": "17:00"},
                    {"day_of_week": "Sunday", "is_closed": True},
                ]
            },
        )

        assert response.status_code == 200
        listed = (await async_client.get(url)).json()["hours"]
        assert [h["day_of_week"] for h in listed] == ["Monday", "Saturday", "Sunday"]
        assert listed[0] == {
            "id": listed[0]["id"],
            "business_id": business.id,
            "day_of_week": "Monday",
            "opens": "08:00",
            "closes": "17:00",
            "is_closed": False,
        }
        assert listed[2]["is_closed"] is True

    async def test_invalid_day_is_rejected(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        response = await async_client.put(
            f"/api/v1/businesses/{business.id}/hours",
            json={"hours": [{"day_of_week": "Funday", "opens": "08:00"}]},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_missing_business(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/v1/businesses/missing/hours")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestSocialLinksApi:
    async def test_add_list_and_delete(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        url = f"/api/v1/businesses/{business.id}/social"

        created = await async_client.post(
            url, json={"platform": "facebook", "url": "https://facebook.com/acmeplumbing"}
        )
        assert created.status_code == 201
        link = created.json()["link"]
        assert link["platform"] == "facebook"
        assert link["url"] == "https://facebook.com/acmeplumbing"

        listed = (await async_client.get(url)).json()["links"]
        assert [item["id"] for item in listed] == [link["id"]]

        deleted = await async_client.delete(f"{url}/facebook")
        assert deleted.status_code == 204
        assert (await async_client.get(url)).json() == {"links": []}

    async def test_posting_same_platform_updates_url(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        url = f"/api/v1/businesses/{business.id}/social"
        await async_client.post(url, json={"platform": "yelp", "url": "https://yelp.com/biz/a"})

        response = await async_client.post(
            url, json={"platform": "yelp", "url": "https://yelp.com/biz/acme"}
        )

        assert response.status_code == 201
        links = (await async_client.get(url)).json()["links"]
        assert [item["url"] for item in links] == ["https://yelp.com/biz/acme"]

    async def test_invalid_url_is_rejected(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        response = await async_client.post(
            f"/api/v1/businesses/{business.id}/social",
            json={"platform": "facebook", "url": "facebook"},
        )

        assert response.status_code == 422

    async def test_unknown_platform_in_path_is_rejected(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        response = await async_client.delete(
            f"/api/v1/businesses/{business.id}/social/myspace"
        )

        assert response.status_code == 422

    async def test_deleting_absent_link_is_not_found(
        self, async_client: AsyncClient, business: Business
    ) -> None:
        response = await async_client.delete(
            f"/api/v1/businesses/{business.id}/social/linkedin"
        )

        assert response.status_code == 404
        assert response.json()["error"] == "SocialLink not found: linkedin"
