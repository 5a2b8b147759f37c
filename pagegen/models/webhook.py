"""Webhook model: HTTP target notified when a generation job finalizes."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from pagegen.core.database import Base


class WebhookEvent(str, Enum):
    """Events a webhook can subscribe to."""

    JOB_COMPLETED = "job.completed"
    JOB_FAILED = "job.failed"


class Webhook(Base):
    """Webhook subscription.

    events is a list of event names, or NULL to receive every event.
    """

    __tablename__ = "webhooks"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    url: Mapped[str] = mapped_column(Text, nullable=False)

    events: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)

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
        return f"<Webhook(id={self.id!r}, url={self.url!r}, active={self.is_active})>"
