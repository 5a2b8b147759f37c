"""Location service.

Store locations feed the *-location page types. An active location is
mirrored by a service area with the same city-state slug: creating or
activating a location creates that area or links the existing one, and
deleting a location unlinks (never deletes) its areas.
"""

from collections import Counter
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.exceptions import NotFoundError
from pagegen.core.logging import get_logger
from pagegen.models.business import Business
from pagegen.models.location import Location, LocationStatus
from pagegen.models.service_area import ServiceArea
from pagegen.schemas.location import LocationCreate, LocationUpdate
from pagegen.services.business import get_business_or_404
from pagegen.services.service_area import find_service_area_by_slug
from pagegen.utils.slug import to_city_state_slug

logger = get_logger(__name__)

ADDRESS_FIELDS = frozenset({"address", "city", "state", "zip_code"})


def build_display_name(business_name: str | None, city: str) -> str:
    return f"{business_name or 'Location'} ({city})"


def build_full_address(
    address: str | None, city: str, state: str, zip_code: str | None
) -> str | None:
    """Assemble "street, city, ST zip". Returns None without a street address."""
    if not address:
        return None
    return f"{address}, {city}, {state} {zip_code or ''}".strip()


class LocationService:
    """Service class for Location operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get(self, business_id: str, location_id: str) -> Location:
        location = await self.session.scalar(
            select(Location).where(
                Location.id == location_id, Location.business_id == business_id
            )
        )
        if location is None:
            raise NotFoundError("Location", location_id)
        return location

    async def link_service_area(self, location: Location) -> ServiceArea:
        """Create the location's service area, or link the existing one by slug."""
        slug = to_city_state_slug(location.city, location.state)
        area = await find_service_area_by_slug(self.session, location.business_id, slug)

        if area is None:
            area = ServiceArea(
                business_id=location.business_id,
                city=location.city,
                state=location.state,
                slug=slug,
                priority=location.priority,
                is_active=True,
                location_id=location.id,
            )
            self.session.add(area)
            logger.info(
                "Service area created for location",
                extra={"location_id": location.id, "slug": slug},
            )
        elif area.location_id != location.id:
            area.location_id = location.id
            logger.info(
                "Service area linked to location",
                extra={"location_id": location.id, "service_area_id": area.id},
            )

        await self.session.flush()
        return area

    async def unlink_service_areas(self, location_id: str) -> int:
        """Clear location_id on every service area pointing at the location."""
        result = await self.session.execute(
            update(ServiceArea)
            .where(ServiceArea.location_id == location_id)
            .values(location_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def list_locations(
        self,
        business_id: str,
        status: str | None = None,
        state: str | None = None,
        country: str | None = None,
    ) -> list[Location]:
        """List locations, headquarters first, then by priority and place."""
        await get_business_or_404(self.session, business_id)

        stmt = select(Location).where(Location.business_id == business_id)
        if status is not None:
            stmt = stmt.where(Location.status == status.lower())
        if state is not None:
            stmt = stmt.where(Location.state == state)
        if country is not None:
            stmt = stmt.where(Location.country == country.upper())
        stmt = stmt.order_by(
            Location.is_headquarters.desc(),
            Location.priority.desc(),
            Location.state,
            Location.city,
        )

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_location(self, business_id: str, location_id: str) -> Location:
        return await self._get(business_id, location_id)

    async def _create(
        self,
        business: Business,
        data: LocationCreate,
        auto_create_service_area: bool = True,
    ) -> Location:
        values = data.model_dump()
        if not values.get("display_name"):
            values["display_name"] = build_display_name(business.name, data.city)
        if not values.get("full_address"):
            values["full_address"] = build_full_address(
                data.address, data.city, data.state, data.zip_code
            )

        location = Location(business_id=business.id, **values)
        self.session.add(location)
        await self.session.flush()

        if auto_create_service_area and location.status == LocationStatus.ACTIVE.value:
            await self.link_service_area(location)

        await self.session.refresh(location)
        return location

    async def create_location(self, business_id: str, data: LocationCreate) -> Location:
        """Create a location. Active locations get a linked service area."""
        business = await get_business_or_404(self.session, business_id)
        location = await self._create(business, data)
        logger.info(
            "Location created",
            extra={
                "business_id": business_id,
                "location_id": location.id,
                "status": location.status,
            },
        )
        return location

    async def update_location(
        self, business_id: str, location_id: str, data: LocationUpdate
    ) -> Location:
        """Update a location. Ending up active creates or links a service area."""
        location = await self._get(business_id, location_id)

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is None and field in ("name", "city", "state", "country", "status"):
                continue
            if field == "country":
                value = value.upper()
            setattr(location, field, value)

        if ADDRESS_FIELDS & update_data.keys() and "full_address" not in update_data:
            location.full_address = build_full_address(
                location.address, location.city, location.state, location.zip_code
            )

        await self.session.flush()
        if location.status == LocationStatus.ACTIVE.value:
            await self.link_service_area(location)

        await self.session.refresh(location)
        return location

    async def delete_location(self, business_id: str, location_id: str) -> None:
        """Delete a location and unlink its service areas."""
        location = await self._get(business_id, location_id)
        unlinked = await self.unlink_service_areas(location.id)
        await self.session.delete(location)
        await self.session.flush()
        logger.info(
            "Location deleted",
            extra={"location_id": location_id, "unlinked_service_areas": unlinked},
        )

    async def get_stats(self, business_id: str) -> dict[str, Any]:
        """Count locations by status, state and country."""
        locations = await self.list_locations(business_id)
        statuses = Counter(loc.status for loc in locations)
        return {
            "total": len(locations),
            "active": statuses.get(LocationStatus.ACTIVE.value, 0),
            "upcoming": statuses.get(LocationStatus.UPCOMING.value, 0),
            "by_state": dict(Counter(loc.state for loc in locations)),
            "by_country": dict(Counter(loc.country for loc in locations)),
        }

    async def bulk_import(
        self,
        business_id: str,
        rows: list[dict[str, Any]],
        auto_create_service_areas: bool = True,
    ) -> tuple[list[Location], list[dict[str, Any]]]:
        """Import locations row by row, each in its own savepoint.

        Returns:
            Tuple of (created locations, errors as {"index", "error"})
        """
        business = await get_business_or_404(self.session, business_id)

        created: list[Location] = []
        errors: list[dict[str, Any]] = []
        for index, row in enumerate(rows):
            try:
                data = LocationCreate.model_validate(row)
            except PydanticValidationError as e:
                errors.append({"index": index, "error": _first_error(e)})
                continue

            try:
                async with self.session.begin_nested():
                    location = await self._create(
                        business, data, auto_create_service_area=auto_create_service_areas
                    )
            except SQLAlchemyError as e:
                logger.warning(
                    "Location import row failed",
                    extra={"business_id": business_id, "index": index, "error": str(e)},
                )
                errors.append({"index": index, "error": str(e.__cause__ or e)})
                continue
            created.append(location)

        logger.info(
            "Locations bulk imported",
            extra={
                "business_id": business_id,
                "created": len(created),
                "failed": len(errors),
            },
        )
        return created, errors


def _first_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {first.get('msg', 'invalid value')}" if field else first["msg"]
