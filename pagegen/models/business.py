"""Business (tenant root) and its questionnaire.

Every other entity belongs to a business through business_id and is removed
with it (ON DELETE CASCADE). The questionnaire is a free-form JSON document
collected from the business owner; generation reads service offerings and
brand details out of it.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from pagegen.core.database import Base


class Business(Base):
    """Business model.

    Attributes:
        id: UUID primary key
        name: Business display name
        industry: Industry label used in prompts (e.g. "plumbing")
        phone/email/website: Contact fields injected into generated pages
        address/city/state/zip/country: Primary location hint
        created_at: Timestamp when business was created
        updated_at: Timestamp when business was last updated
    """

    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    industry: Mapped[str] = mapped_column(String(100), nullable=False)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    website: Mapped[str | None] = mapped_column(Text, nullable=True)

    address: Mapped[str | None] = mapped_column(String(255), nullable=True)

    city: Mapped[str | None] = mapped_column(String(100), nullable=True)

    state: Mapped[str | None] = mapped_column(String(50), nullable=True)

    zip: Mapped[str | None] = mapped_column(String(20), nullable=True)

    country: Mapped[str] = mapped_column(
        String(2),
        nullable=False,
        default="US",
        server_default=text("'US'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<Business(id={self.id!r}, name={self.name!r})>"


class Questionnaire(Base):
    """Questionnaire answers for a business (one per business).

    Example data structure:
        {
            "business": {"tagline": "..."},
            "services": {"offerings": [{"name": "Drain Cleaning", "isPrimary": true}]},
            "audience": {"targetDemographic": "..."},
            "brand": {"voiceTone": "friendly"}
        }
    """

    __tablename__ = "questionnaires"

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
        unique=True,
    )

    data: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )

    completeness_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return (
            f"<Questionnaire(business_id={self.business_id!r}, "
            f"score={self.completeness_score})>"
        )
