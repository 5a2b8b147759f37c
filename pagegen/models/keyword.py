"""Keyword model: a search phrase targeted by generated pages."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from pagegen.core.database import Base


class KeywordLanguage(str, Enum):
    """Supported keyword languages."""

    EN = "en"
    ES = "es"


class SearchIntent(str, Enum):
    """Search intent classification."""

    INFORMATIONAL = "informational"
    NAVIGATIONAL = "navigational"
    COMMERCIAL = "commercial"
    TRANSACTIONAL = "transactional"


class Keyword(Base):
    """Keyword belonging to a business.

    The slug is derived from the keyword text and is unique per business
    and language, so "plumber" may exist once in English and once in Spanish.
    """

    __tablename__ = "keywords"
    __table_args__ = (
        UniqueConstraint(
            "business_id", "slug", "language", name="uq_keywords_business_slug_language"
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

    keyword: Mapped[str] = mapped_column(String(255), nullable=False)

    slug: Mapped[str] = mapped_column(String(255), nullable=False)

    language: Mapped[str] = mapped_column(
        String(2),
        nullable=False,
        default=KeywordLanguage.EN.value,
        server_default=text("'en'"),
    )

    search_intent: Mapped[str | None] = mapped_column(String(20), nullable=True)

    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, default=5, server_default=text("5")
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
        return f"<Keyword(id={self.id!r}, slug={self.slug!r}, language={self.language!r})>"
