"""Service area service with CRUD and bulk create.

The slug is always derived from city and state ("sterling-va") and is unique
per business.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.exceptions import ConflictError, NotFoundError
from pagegen.core.logging import get_logger
from pagegen.models.service_area import ServiceArea
from pagegen.schemas.keyword import ServiceAreaCreate, ServiceAreaUpdate
from pagegen.services.business import get_business_or_404
from pagegen.utils.slug import to_city_state_slug

logger = get_logger(__name__)


async def find_service_area_by_slug(
    session: AsyncSession, business_id: str, slug: str
) -> ServiceArea | None:
    return await session.scalar(
        select(ServiceArea).where(
            ServiceArea.business_id == business_id, ServiceArea.slug == slug
        )
    )


class ServiceAreaService:
    """Service class for ServiceArea operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get(self, business_id: str, area_id: str) -> ServiceArea:
        area = await self.session.scalar(
            select(ServiceArea).where(
                ServiceArea.id == area_id, ServiceArea.business_id == business_id
            )
        )
        if area is None:
            raise NotFoundError("ServiceArea", area_id)
        return area

    async def list_service_areas(
        self, business_id: str, is_active: bool | None = None
    ) -> list[ServiceArea]:
        await get_business_or_404(self.session, business_id)

        stmt = select(ServiceArea).where(ServiceArea.business_id == business_id)
        if is_active is not None:
            stmt = stmt.where(ServiceArea.is_active == is_active)
        stmt = stmt.order_by(ServiceArea.priority.desc(), ServiceArea.city)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_service_area(
        self, business_id: str, data: ServiceAreaCreate
    ) -> ServiceArea:
        """Create a service area.

        Raises:
            NotFoundError: If the business does not exist
            ConflictError: If the city/state slug already exists
        """
        await get_business_or_404(self.session, business_id)

        slug = to_city_state_slug(data.city, data.state)
        if await find_service_area_by_slug(self.session, business_id, slug):
            raise ConflictError(
                f"Service area '{slug}' already exists", code="DUPLICATE_ERROR"
            )

        area = ServiceArea(business_id=business_id, slug=slug, **data.model_dump())
        self.session.add(area)
        await self.session.flush()
        await self.session.refresh(area)
        return area

    async def bulk_create_service_areas(
        self, business_id: str, items: list[ServiceAreaCreate]
    ) -> tuple[list[ServiceArea], list[str]]:
        """Create many service areas, skipping duplicate slugs."""
        await get_business_or_404(self.session, business_id)

        existing = await self.session.scalars(
            select(ServiceArea.slug).where(ServiceArea.business_id == business_id)
        )
        seen = set(existing.all())

        created: list[ServiceArea] = []
        skipped: list[str] = []
        for item in items:
            slug = to_city_state_slug(item.city, item.state)
            if slug in seen:
                skipped.append(slug)
                continue
            seen.add(slug)
            area = ServiceArea(business_id=business_id, slug=slug, **item.model_dump())
            self.session.add(area)
            created.append(area)

        await self.session.flush()
        for area in created:
            await self.session.refresh(area)

        logger.info(
            "Service areas bulk created",
            extra={
                "business_id": business_id,
                "created": len(created),
                "skipped": len(skipped),
            },
        )
        return created, skipped

    async def update_service_area(
        self, business_id: str, area_id: str, data: ServiceAreaUpdate
    ) -> ServiceArea:
        """Update a service area. Changing city or state re-derives the slug."""
        area = await self._get(business_id, area_id)

        update_data = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field == "county"
        }
        city = update_data.get("city", area.city).strip()
        state = update_data.get("state", area.state).strip()
        slug = to_city_state_slug(city, state)

        if slug != area.slug:
            duplicate = await find_service_area_by_slug(self.session, business_id, slug)
            if duplicate is not None and duplicate.id != area.id:
                raise ConflictError(
                    f"Service area '{slug}' already exists", code="DUPLICATE_ERROR"
                )
            update_data["slug"] = slug

        for field, value in update_data.items():
            setattr(area, field, value)

        await self.session.flush()
        await self.session.refresh(area)
        return area

    async def delete_service_area(self, business_id: str, area_id: str) -> None:
        area = await self._get(business_id, area_id)
        await self.session.delete(area)
        await self.session.flush()
