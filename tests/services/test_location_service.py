"""Tests for locations and their linked service areas."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.exceptions import NotFoundError
from pagegen.models.business import Business
from pagegen.models.service_area import ServiceArea
from pagegen.schemas.location import LocationCreate, LocationUpdate
from pagegen.services.location import (
    LocationService,
    build_display_name,
    build_full_address,
)


async def area_by_slug(session: AsyncSession, business_id: str, slug: str) -> ServiceArea | None:
    return await session.scalar(
        select(ServiceArea)
        .where(ServiceArea.business_id == business_id, ServiceArea.slug == slug)
        .execution_options(populate_existing=True)
    )


class TestHelpers:
    def test_display_name(self) -> None:
        assert build_display_name("Acme Plumbing", "Leesburg") == "Acme Plumbing (Leesburg)"
        assert build_display_name(None, "Leesburg") == "Location (Leesburg)"

    def test_full_address(self) -> None:
        assert (
            build_full_address("1 Main St", "Leesburg", "VA", "20175")
            == "1 Main St, Leesburg, VA 20175"
        )
        assert build_full_address("1 Main St", "Leesburg", "VA", None) == "1 Main St, Leesburg, VA"
        assert build_full_address(None, "Leesburg", "VA", "20175") is None


class TestLocationService:
    async def test_create_fills_derived_fields(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        location = await LocationService(db_session).create_location(
            business.id,
            LocationCreate(
                name="Leesburg Store",
                address="1 Main St",
                city="Leesburg",
                state="VA",
                zip_code="20175",
            ),
        )

        assert location.display_name == "Acme Plumbing (Leesburg)"
        assert location.full_address == "1 Main St, Leesburg, VA 20175"
        assert location.status == "active"

    async def test_active_location_creates_linked_service_area(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        location = await LocationService(db_session).create_location(
            business.id, LocationCreate(name="Leesburg", city="Leesburg", state="VA")
        )

        area = await area_by_slug(db_session, business.id, "leesburg-va")
        assert area is not None
        assert area.location_id == location.id
        assert area.is_active is True

    async def test_active_location_links_existing_service_area(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        location = await LocationService(db_session).create_location(
            business.id, LocationCreate(name="Sterling", city="Sterling", state="VA")
        )

        areas = (
            await db_session.scalars(
                select(ServiceArea).where(ServiceArea.slug == "sterling-va")
            )
        ).all()
        assert len(areas) == 1
        assert areas[0].location_id == location.id

    async def test_upcoming_location_has_no_service_area(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        await LocationService(db_session).create_location(
            business.id,
            LocationCreate(name="Vienna", city="Vienna", state="VA", status="upcoming"),
        )

        assert await area_by_slug(db_session, business.id, "vienna-va") is None

    async def test_activating_location_links_service_area(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        service = LocationService(db_session)
        location = await service.create_location(
            business.id,
            LocationCreate(name="Vienna", city="Vienna", state="VA", status="upcoming"),
        )

        await service.update_location(
            business.id, location.id, LocationUpdate(status="active")
        )

        area = await area_by_slug(db_session, business.id, "vienna-va")
        assert area is not None
        assert area.location_id == location.id

    async def test_address_change_rebuilds_full_address(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        service = LocationService(db_session)
        location = await service.create_location(
            business.id,
            LocationCreate(
                name="Leesburg", address="1 Main St", city="Leesburg", state="VA"
            ),
        )

        updated = await service.update_location(
            business.id, location.id, LocationUpdate(address="9 King St", zip_code="20176")
        )

        assert updated.full_address == "9 King St, Leesburg, VA 20176"

    async def test_delete_unlinks_but_keeps_service_area(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        service = LocationService(db_session)
        location = await service.create_location(
            business.id, LocationCreate(name="Leesburg", city="Leesburg", state="VA")
        )

        await service.delete_location(business.id, location.id)

        area = await area_by_slug(db_session, business.id, "leesburg-va")
        assert area is not None
        assert area.location_id is None
        with pytest.raises(NotFoundError):
            await service.get_location(business.id, location.id)

    async def test_list_puts_headquarters_first(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        service = LocationService(db_session)
        await service.create_location(
            business.id, LocationCreate(name="Store", city="Leesburg", state="VA", priority=9)
        )
        await service.create_location(
            business.id,
            LocationCreate(name="HQ", city="Reston", state="VA", is_headquarters=True),
        )

        locations = await service.list_locations(business.id)

        assert [loc.name for loc in locations] == ["HQ", "Store"]

    async def test_stats(self, db_session: AsyncSession, business: Business) -> None:
        service = LocationService(db_session)
        await service.create_location(
            business.id, LocationCreate(name="A", city="Leesburg", state="VA")
        )
        await service.create_location(
            business.id,
            LocationCreate(name="B", city="Austin", state="TX", status="upcoming"),
        )
        await service.create_location(
            business.id, LocationCreate(name="C", city="Toronto", state="ON", country="ca")
        )

        stats = await service.get_stats(business.id)

        assert stats == {
            "total": 3,
            "active": 2,
            "upcoming": 1,
            "by_state": {"VA": 1, "TX": 1, "ON": 1},
            "by_country": {"US": 2, "CA": 1},
        }

    async def test_bulk_import_reports_row_errors(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        created, errors = await LocationService(db_session).bulk_import(
            business.id,
            [
                {"name": "Leesburg", "city": "Leesburg", "state": "VA"},
                {"name": "No City", "state": "VA"},
                {"name": "Bad Status", "city": "Vienna", "state": "VA", "status": "closed"},
                {"name": "Herndon", "city": "Herndon", "state": "VA", "status": "upcoming"},
            ],
        )

        assert [loc.name for loc in created] == ["Leesburg", "Herndon"]
        assert [e["index"] for e in errors] == [1, 2]
        assert errors[0]["error"].startswith("city:")

    async def test_bulk_import_without_service_areas(
        self, db_session: AsyncSession, business: Business
    ) -> None:
        created, errors = await LocationService(db_session).bulk_import(
            business.id,
            [{"name": "Leesburg", "city": "Leesburg", "state": "VA"}],
            auto_create_service_areas=False,
        )

        assert len(created) == 1
        assert errors == []
        assert await area_by_slug(db_session, business.id, "leesburg-va") is None
