"""Location model: a physical store record."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from pagegen.core.database import Base


class LocationStatus(str, Enum):
    """Store status. Upcoming stores still get pages ("coming soon")."""

    ACTIVE = "active"
    UPCOMING = "upcoming"


class Location(Base):
    """Physical store belonging to a business.

    Attributes:
        status: active or upcoming
        is_headquarters: Headquarters rows are excluded from page fan-out
        display_name: Defaults to "{business name} ({city})"
        full_address: Assembled from the address parts on save
    """

    __tablename__ = "locations"

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

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    address: Mapped[str | None] = mapped_column(String(255), nullable=True)

    city: Mapped[str] = mapped_column(String(100), nullable=False)

    state: Mapped[str] = mapped_column(String(50), nullable=False)

    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    country: Mapped[str] = mapped_column(
        String(2), nullable=False, default="US", server_default=text("'US'")
    )

    full_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    google_maps_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LocationStatus.ACTIVE.value,
        server_default=text("'active'"),
        index=True,
    )

    is_headquarters: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
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
            f"<Location(id={self.id!r}, city={self.city!r}, "
            f"state={self.state!r}, status={self.status!r})>"
        )
