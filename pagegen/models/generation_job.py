"""GenerationJob and JobPage models.

A GenerationJob is one bulk generation request; it fans out into one JobPage
per (keyword, geography) pair. Pages are the unit of work claimed by workers.

Status transitions:
    job:  pending -> processing -> completed | failed
    page: queued -> processing -> completed | failed

ERROR LOGGING REQUIREMENTS:
- Log every page claim with job_id, page_id, worker_id and attempts
- Log page completion with status and duration
- Log job finalization with final counters
- Log stale claim releases with the number of pages released
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from pagegen.core.database import Base

MAX_ATTEMPTS = 3


class JobStatus(str, Enum):
    """Generation job status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PageStatus(str, Enum):
    """Job page status."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_JOB_STATUSES = frozenset(
    {JobStatus.COMPLETED.value, JobStatus.FAILED.value, JobStatus.CANCELLED.value}
)
TERMINAL_PAGE_STATUSES = frozenset({PageStatus.COMPLETED.value, PageStatus.FAILED.value})


class GenerationJob(Base):
    """Bulk generation job.

    Invariant: completed_pages + failed_pages <= total_pages. The job reaches
    a terminal status exactly when the sum equals total_pages.
    """

    __tablename__ = "generation_jobs"

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

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=JobStatus.PENDING.value,
        server_default=text("'pending'"),
        index=True,
    )

    total_pages: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    completed_pages: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    failed_pages: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    cost_total_usd: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default=text("0")
    )

    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    webhook_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

    def __repr__(self) -> str:
        return (
            f"<GenerationJob(id={self.id!r}, status={self.status!r}, "
            f"progress={self.completed_pages + self.failed_pages}/{self.total_pages})>"
        )


class JobPage(Base):
    """Single page within a generation job."""

    __tablename__ = "job_pages"
    __table_args__ = (
        Index("ix_job_pages_job_status_created", "job_id", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    job_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("generation_jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    business_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Source ids are informational; sources may be deleted after fan-out
    keyword_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)

    service_area_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False), nullable=True
    )

    location_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)

    keyword_slug: Mapped[str] = mapped_column(String(255), nullable=False)

    keyword_text: Mapped[str] = mapped_column(String(255), nullable=False)

    keyword_language: Mapped[str] = mapped_column(
        String(2), nullable=False, default="en", server_default=text("'en'")
    )

    service_area_slug: Mapped[str] = mapped_column(String(160), nullable=False)

    url_path: Mapped[str] = mapped_column(String(512), nullable=False)

    city: Mapped[str] = mapped_column(String(100), nullable=False)

    state: Mapped[str] = mapped_column(String(50), nullable=False)

    location_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PageStatus.QUEUED.value,
        server_default=text("'queued'"),
    )

    attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    worker_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    content: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    section_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    word_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    model_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    prompt_version: Mapped[int | None] = mapped_column(Integer, nullable=True)

    generation_duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    input_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)

    output_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)

    cost_usd: Mapped[float | None] = mapped_column(Float, nullable=True)

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PAGE_STATUSES

    def __repr__(self) -> str:
        return (
            f"<JobPage(id={self.id!r}, job_id={self.job_id!r}, "
            f"url_path={self.url_path!r}, status={self.status!r})>"
        )
