"""Business profile details: opening hours and social media links.

Both hang off a business and go with it (ON DELETE CASCADE). Hours hold at
most one row per weekday and links at most one row per platform, so writes
to either are upserts.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from pagegen.core.database import Base


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


# Calendar order, used to sort hours Monday first
WEEKDAY_ORDER = {day.value: index for index, day in enumerate(DayOfWeek)}


class SocialPlatform(str, Enum):
    """Platforms a business can link to."""

    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    YELP = "yelp"
    GOOGLE = "google"
    LINKTREE = "linktree"


class BusinessHours(Base):
    """Opening hours of a business for one weekday.

    opens/closes are "HH:MM" strings in the business's local time. A closed
    day has is_closed set and usually no times.
    """

    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("business_id", "day_of_week", name="uq_business_hours_business_day"),
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

    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)

    opens: Mapped[str | None] = mapped_column(String(5), nullable=True)

    closes: Mapped[str | None] = mapped_column(String(5), nullable=True)

    is_closed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<BusinessHours(business_id={self.business_id!r}, day={self.day_of_week!r})>"


class SocialLink(Base):
    """A business's profile URL on one social platform."""

    __tablename__ = "business_social_links"
    __table_args__ = (
        UniqueConstraint("business_id", "platform", name="uq_social_links_business_platform"),
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

    platform: Mapped[str] = mapped_column(String(20), nullable=False)

    url: Mapped[str] = mapped_column(Text, nullable=False)

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
        return f"<SocialLink(business_id={self.business_id!r}, platform={self.platform!r})>"
