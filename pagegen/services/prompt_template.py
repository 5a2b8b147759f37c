"""Prompt template service.

Templates are versioned per (business, page type). The active template for a
page type is the highest active version; nothing stops two versions being
active at once, in which case the higher one wins.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.exceptions import ConflictError, NotFoundError
from pagegen.core.logging import get_logger
from pagegen.models.prompt_template import PromptTemplate
from pagegen.schemas.prompt_template import PromptTemplateCreate, PromptTemplateUpdate
from pagegen.services.business import get_business_or_404
from pagegen.services.job_fanout import require_page_type

logger = get_logger(__name__)


async def get_active_template(
    session: AsyncSession, business_id: str, page_type: str
) -> PromptTemplate | None:
    """Highest active version for the page type, or None."""
    return await session.scalar(
        select(PromptTemplate)
        .where(
            PromptTemplate.business_id == business_id,
            PromptTemplate.page_type == page_type,
            PromptTemplate.is_active.is_(True),
        )
        .order_by(PromptTemplate.version.desc())
        .limit(1)
    )


class PromptTemplateService:
    """Service class for PromptTemplate operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get(self, business_id: str, template_id: str) -> PromptTemplate:
        template = await self.session.scalar(
            select(PromptTemplate).where(
                PromptTemplate.id == template_id,
                PromptTemplate.business_id == business_id,
            )
        )
        if template is None:
            raise NotFoundError("PromptTemplate", template_id)
        return template

    async def list_templates(
        self, business_id: str, page_type: str | None = None
    ) -> list[PromptTemplate]:
        """List templates ordered by page type, newest version first."""
        await get_business_or_404(self.session, business_id)

        stmt = select(PromptTemplate).where(PromptTemplate.business_id == business_id)
        if page_type:
            stmt = stmt.where(PromptTemplate.page_type == require_page_type(page_type))
        stmt = stmt.order_by(PromptTemplate.page_type, PromptTemplate.version.desc())

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_template(self, business_id: str, template_id: str) -> PromptTemplate:
        return await self._get(business_id, template_id)

    async def get_active(self, business_id: str, page_type: str) -> PromptTemplate:
        """Active template for a page type.

        Raises:
            ValidationError: Unknown page type
            NotFoundError: No active template
        """
        await get_business_or_404(self.session, business_id)
        canonical = require_page_type(page_type)
        template = await get_active_template(self.session, business_id, canonical)
        if template is None:
            raise NotFoundError("Active prompt template", canonical)
        return template

    async def create_template(
        self, business_id: str, data: PromptTemplateCreate
    ) -> PromptTemplate:
        """Create a template version.

        Raises:
            ConflictError: The (page type, version) pair already exists
        """
        await get_business_or_404(self.session, business_id)
        page_type = require_page_type(data.page_type)

        existing = await self.session.scalar(
            select(func.count(PromptTemplate.id)).where(
                PromptTemplate.business_id == business_id,
                PromptTemplate.page_type == page_type,
                PromptTemplate.version == data.version,
            )
        )
        if existing:
            raise ConflictError(
                f"Prompt template {page_type} v{data.version} already exists",
                code="DUPLICATE_ERROR",
            )

        template = PromptTemplate(
            business_id=business_id,
            **{**data.model_dump(), "page_type": page_type},
        )
        self.session.add(template)
        await self.session.flush()
        await self.session.refresh(template)

        logger.info(
            "Prompt template created",
            extra={
                "business_id": business_id,
                "page_type": page_type,
                "version": template.version,
            },
        )
        return template

    async def update_template(
        self, business_id: str, template_id: str, data: PromptTemplateUpdate
    ) -> PromptTemplate:
        template = await self._get(business_id, template_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(template, field, value)
        await self.session.flush()
        await self.session.refresh(template)
        return template

    async def delete_template(self, business_id: str, template_id: str) -> None:
        template = await self._get(business_id, template_id)
        await self.session.delete(template)
        await self.session.flush()
