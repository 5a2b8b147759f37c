"""Business hours and social links.

Hours are keyed by weekday and links by platform; saving either replaces
the existing row for that key instead of adding a second one.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.exceptions import NotFoundError
from pagegen.core.logging import get_logger
from pagegen.models.business_profile import (
    WEEKDAY_ORDER,
    BusinessHours,
    SocialLink,
    SocialPlatform,
)
from pagegen.schemas.business_profile import BusinessHoursEntry, SocialLinkCreate
from pagegen.services.business import get_business_or_404

logger = get_logger(__name__)


class BusinessProfileService:
    """Service class for business hours and social link operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _hours(self, business_id: str) -> list[BusinessHours]:
        result = await self.session.execute(
            select(BusinessHours).where(BusinessHours.business_id == business_id)
        )
        return sorted(
            result.scalars().all(), key=lambda row: WEEKDAY_ORDER.get(row.day_of_week, 7)
        )

    async def list_hours(self, business_id: str) -> list[BusinessHours]:
        """Hours of a business, Monday first."""
        await get_business_or_404(self.session, business_id)
        return await self._hours(business_id)

    async def save_hours(
        self, business_id: str, entries: list[BusinessHoursEntry]
    ) -> list[BusinessHours]:
        """Upsert one row per listed weekday and return the full week."""
        await get_business_or_404(self.session, business_id)
        existing = {row.day_of_week: row for row in await self._hours(business_id)}

        for entry in entries:
            day = entry.day_of_week.value
            row = existing.get(day)
            if row is None:
                row = BusinessHours(business_id=business_id, day_of_week=day)
                self.session.add(row)
            row.opens = entry.opens
            row.closes = entry.closes
            row.is_closed = entry.is_closed

        await self.session.flush()
        logger.info(
            "Business hours saved",
            extra={
                "business_id": business_id,
                "days": [entry.day_of_week.value for entry in entries],
            },
        )
        return await self._hours(business_id)

    async def list_social_links(self, business_id: str) -> list[SocialLink]:
        """Social links of a business ordered by platform."""
        await get_business_or_404(self.session, business_id)
        result = await self.session.execute(
            select(SocialLink)
            .where(SocialLink.business_id == business_id)
            .order_by(SocialLink.platform.asc())
        )
        return list(result.scalars().all())

    async def _find_link(self, business_id: str, platform: str) -> SocialLink | None:
        return await self.session.scalar(
            select(SocialLink).where(
                SocialLink.business_id == business_id,
                SocialLink.platform == platform,
            )
        )

    async def save_social_link(
        self, business_id: str, data: SocialLinkCreate
    ) -> SocialLink:
        """Add a link, or replace the URL of the platform's existing link."""
        await get_business_or_404(self.session, business_id)
        platform = data.platform.value

        link = await self._find_link(business_id, platform)
        if link is None:
            link = SocialLink(business_id=business_id, platform=platform)
            self.session.add(link)
        link.url = str(data.url)

        await self.session.flush()
        await self.session.refresh(link)
        logger.info(
            "Social link saved",
            extra={"business_id": business_id, "platform": platform},
        )
        return link

    async def delete_social_link(
        self, business_id: str, platform: SocialPlatform
    ) -> None:
        """Remove a platform's link.

        Raises:
            NotFoundError: Business does not exist or has no link for the platform
        """
        await get_business_or_404(self.session, business_id)
        link = await self._find_link(business_id, platform.value)
        if link is None:
            raise NotFoundError("SocialLink", platform.value)

        await self.session.delete(link)
        await self.session.flush()
        logger.info(
            "Social link deleted",
            extra={"business_id": business_id, "platform": platform.value},
        )
