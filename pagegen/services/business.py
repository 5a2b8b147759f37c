"""Business and questionnaire service.

Creating a business also creates its (empty) questionnaire. Saving the
questionnaire recomputes its completeness score, which gates job creation.
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.exceptions import NotFoundError
from pagegen.core.logging import get_logger
from pagegen.models.business import Business, Questionnaire
from pagegen.schemas.business import BusinessCreate, BusinessUpdate

logger = get_logger(__name__)

# Top-level questionnaire sections and the share of the score they carry
REQUIRED_SECTIONS = ("business", "services", "serviceAreas", "audience")
OPTIONAL_SECTIONS = ("brand", "competitors", "content", "seo")
REQUIRED_WEIGHT = 60
OPTIONAL_WEIGHT = 40


def _has_content(value: Any) -> bool:
    """A section counts when it is present and non-empty."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, dict | list):
        return len(value) > 0
    return True


def compute_completeness_score(data: dict[str, Any] | None) -> int:
    """Score a questionnaire from 0 to 100.

    Required sections share 60 points and optional sections share 40.
    """
    if not data:
        return 0

    required_filled = sum(1 for key in REQUIRED_SECTIONS if _has_content(data.get(key)))
    optional_filled = sum(1 for key in OPTIONAL_SECTIONS if _has_content(data.get(key)))

    score = (
        required_filled / len(REQUIRED_SECTIONS) * REQUIRED_WEIGHT
        + optional_filled / len(OPTIONAL_SECTIONS) * OPTIONAL_WEIGHT
    )
    return min(100, round(score))


async def get_business_or_404(session: AsyncSession, business_id: str) -> Business:
    """Load a business or raise NotFoundError."""
    business = await session.get(Business, business_id)
    if business is None:
        raise NotFoundError("Business", business_id)
    return business


class BusinessService:
    """Service class for Business CRUD and questionnaire operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_businesses(
        self, limit: int = 100, offset: int = 0
    ) -> tuple[list[Business], int]:
        """List businesses by name with pagination.

        Returns:
            Tuple of (businesses, total count)
        """
        total = await self.session.scalar(select(func.count()).select_from(Business))
        result = await self.session.execute(
            select(Business).order_by(Business.name).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def get_business(self, business_id: str) -> Business:
        return await get_business_or_404(self.session, business_id)

    async def create_business(self, data: BusinessCreate) -> Business:
        """Create a business and its empty questionnaire."""
        business = Business(**data.model_dump())
        self.session.add(business)
        await self.session.flush()

        self.session.add(
            Questionnaire(business_id=business.id, data={}, completeness_score=0)
        )
        await self.session.flush()
        await self.session.refresh(business)

        logger.info(
            "Business created",
            extra={"business_id": business.id, "business_name": business.name},
        )
        return business

    async def update_business(self, business_id: str, data: BusinessUpdate) -> Business:
        business = await get_business_or_404(self.session, business_id)

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field == "country" and value is not None:
                value = value.upper()
            setattr(business, field, value)

        await self.session.flush()
        await self.session.refresh(business)
        return business

    async def delete_business(self, business_id: str) -> None:
        """Delete a business. Owned rows go with it (ON DELETE CASCADE)."""
        business = await get_business_or_404(self.session, business_id)
        await self.session.delete(business)
        await self.session.flush()
        logger.info("Business deleted", extra={"business_id": business_id})

    async def get_questionnaire(self, business_id: str) -> Questionnaire:
        """Get the questionnaire, creating an empty one if it is missing."""
        await get_business_or_404(self.session, business_id)
        questionnaire = await self.session.scalar(
            select(Questionnaire).where(Questionnaire.business_id == business_id)
        )
        if questionnaire is None:
            questionnaire = Questionnaire(
                business_id=business_id, data={}, completeness_score=0
            )
            self.session.add(questionnaire)
            await self.session.flush()
            await self.session.refresh(questionnaire)
        return questionnaire

    async def save_questionnaire(
        self, business_id: str, data: dict[str, Any]
    ) -> Questionnaire:
        """Replace the questionnaire data and recompute its score."""
        questionnaire = await self.get_questionnaire(business_id)
        questionnaire.data = data
        questionnaire.completeness_score = compute_completeness_score(data)

        await self.session.flush()
        await self.session.refresh(questionnaire)

        logger.info(
            "Questionnaire saved",
            extra={
                "business_id": business_id,
                "completeness_score": questionnaire.completeness_score,
            },
        )
        return questionnaire
