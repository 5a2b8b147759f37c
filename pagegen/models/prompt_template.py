"""PromptTemplate model: versioned LLM prompt per page type."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from pagegen.core.database import Base


class PromptTemplate(Base):
    """Versioned prompt template.

    The template text uses {{variable}} placeholders. At most one version per
    page type is meant to be active; this is not enforced and the highest
    active version wins when generation looks it up.
    """

    __tablename__ = "prompt_templates"
    __table_args__ = (
        UniqueConstraint(
            "business_id",
            "page_type",
            "version",
            name="uq_prompt_templates_business_type_version",
        ),
    )

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    business_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    page_type: Mapped[str] = mapped_column(String(50), nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    template: Mapped[str] = mapped_column(Text, nullable=False)

    required_variables: Mapped[list[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )

    optional_variables: Mapped[list[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )

    word_count_target: Mapped[int] = mapped_column(
        Integer, nullable=False, default=600, server_default=text("600")
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    def __repr__(self) -> str:
        return (
            f"<PromptTemplate(id={self.id!r}, page_type={self.page_type!r}, "
            f"version={self.version})>"
        )
