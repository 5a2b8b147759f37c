"""Keyword service with CRUD and bulk create.

Keyword slugs are derived from the keyword text and must be unique per
(business, language).
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.exceptions import ConflictError, NotFoundError
from pagegen.core.logging import get_logger
from pagegen.models.keyword import Keyword
from pagegen.schemas.keyword import KeywordCreate, KeywordUpdate
from pagegen.services.business import get_business_or_404
from pagegen.utils.slug import to_slug

logger = get_logger(__name__)


class KeywordService:
    """Service class for Keyword operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _find_duplicate(
        self,
        business_id: str,
        slug: str,
        language: str,
        exclude_id: str | None = None,
    ) -> Keyword | None:
        stmt = select(Keyword).where(
            Keyword.business_id == business_id,
            Keyword.slug == slug,
            Keyword.language == language,
        )
        if exclude_id is not None:
            stmt = stmt.where(Keyword.id != exclude_id)
        return await self.session.scalar(stmt)

    async def _get(self, business_id: str, keyword_id: str) -> Keyword:
        keyword = await self.session.scalar(
            select(Keyword).where(
                Keyword.id == keyword_id, Keyword.business_id == business_id
            )
        )
        if keyword is None:
            raise NotFoundError("Keyword", keyword_id)
        return keyword

    async def list_keywords(
        self,
        business_id: str,
        language: str | None = None,
        is_active: bool | None = None,
    ) -> list[Keyword]:
        """List keywords, highest priority first."""
        await get_business_or_404(self.session, business_id)

        stmt = select(Keyword).where(Keyword.business_id == business_id)
        if language is not None:
            stmt = stmt.where(Keyword.language == language.lower())
        if is_active is not None:
            stmt = stmt.where(Keyword.is_active == is_active)
        stmt = stmt.order_by(Keyword.priority.desc(), Keyword.keyword)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_keyword(self, business_id: str, data: KeywordCreate) -> Keyword:
        """Create a keyword.

        Raises:
            NotFoundError: If the business does not exist
            ConflictError: If the slug already exists for this language
        """
        await get_business_or_404(self.session, business_id)

        slug = to_slug(data.keyword)
        if await self._find_duplicate(business_id, slug, data.language):
            raise ConflictError(
                f"Keyword '{data.keyword}' already exists for language '{data.language}'",
                code="DUPLICATE_ERROR",
            )

        keyword = Keyword(business_id=business_id, slug=slug, **data.model_dump())
        self.session.add(keyword)
        await self.session.flush()
        await self.session.refresh(keyword)
        return keyword

    async def bulk_create_keywords(
        self, business_id: str, items: list[KeywordCreate]
    ) -> tuple[list[Keyword], list[str]]:
        """Create many keywords, skipping duplicates.

        Returns:
            Tuple of (created keywords, skipped keyword texts)
        """
        await get_business_or_404(self.session, business_id)

        existing = await self.session.execute(
            select(Keyword.slug, Keyword.language).where(
                Keyword.business_id == business_id
            )
        )
        seen: set[tuple[str, str]] = {(row.slug, row.language) for row in existing}

        created: list[Keyword] = []
        skipped: list[str] = []
        for item in items:
            slug = to_slug(item.keyword)
            if not slug or (slug, item.language) in seen:
                skipped.append(item.keyword)
                continue
            seen.add((slug, item.language))
            keyword = Keyword(business_id=business_id, slug=slug, **item.model_dump())
            self.session.add(keyword)
            created.append(keyword)

        await self.session.flush()
        for keyword in created:
            await self.session.refresh(keyword)

        logger.info(
            "Keywords bulk created",
            extra={
                "business_id": business_id,
                "created": len(created),
                "skipped": len(skipped),
            },
        )
        return created, skipped

    async def update_keyword(
        self, business_id: str, keyword_id: str, data: KeywordUpdate
    ) -> Keyword:
        """Update a keyword. Changing the text re-derives the slug."""
        keyword = await self._get(business_id, keyword_id)

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("keyword"):
            update_data["keyword"] = update_data["keyword"].strip()
            update_data["slug"] = to_slug(update_data["keyword"])

        slug = update_data.get("slug", keyword.slug)
        language = update_data.get("language") or keyword.language
        if (slug, language) != (keyword.slug, keyword.language) and (
            await self._find_duplicate(business_id, slug, language, exclude_id=keyword.id)
        ):
            raise ConflictError(
                f"Keyword slug '{slug}' already exists for language '{language}'",
                code="DUPLICATE_ERROR",
            )

        for field, value in update_data.items():
            if value is None and field in ("keyword", "language", "priority", "is_active"):
                continue
            setattr(keyword, field, value)

        await self.session.flush()
        await self.session.refresh(keyword)
        return keyword

    async def delete_keyword(self, business_id: str, keyword_id: str) -> None:
        keyword = await self._get(business_id, keyword_id)
        await self.session.delete(keyword)
        await self.session.flush()
