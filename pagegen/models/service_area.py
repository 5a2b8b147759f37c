"""ServiceArea model: an SEO target city (not necessarily a physical store)."""

from datetime import UTC, datetime
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


class ServiceArea(Base):
    """Nearby city a business wants to rank in.

    A service area may be linked to the physical Location that spawned it
    (location_id). Deleting that location unlinks the area but keeps it.
    """

    __tablename__ = "service_areas"
    __table_args__ = (
        UniqueConstraint("business_id", "slug", name="uq_service_areas_business_slug"),
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

    city: Mapped[str] = mapped_column(String(100), nullable=False)

    state: Mapped[str] = mapped_column(String(50), nullable=False)

    county: Mapped[str | None] = mapped_column(String(100), nullable=True)

    slug: Mapped[str] = mapped_column(String(160), nullable=False)

    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    location_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    def __repr__(self) -> str:
        return f"<ServiceArea(id={self.id!r}, slug={self.slug!r})>"
