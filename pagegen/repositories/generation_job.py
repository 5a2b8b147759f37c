"""Repositories for generation jobs and job pages.

All state transitions are single guarded UPDATE statements so that concurrent
workers (HTTP claimers and queue consumers alike) never double-claim a page,
never count a page twice, and never finalize or notify a job twice:

- claim: UPDATE ... WHERE id = (SELECT ... LIMIT 1 [FOR UPDATE SKIP LOCKED])
- complete: UPDATE ... WHERE status = 'processing'
- counters: UPDATE ... WHERE completed_pages + failed_pages < total_pages
- finalize: UPDATE ... WHERE status is open AND completed + failed >= total
- webhook marker: UPDATE ... WHERE webhook_sent_at IS NULL
- stale sweep: re-queue while attempts < MAX_ATTEMPTS, otherwise fail the page

Follows the layered architecture pattern: API -> Service -> Repository -> Database.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters
- Log all exceptions with full stack trace and context
- Include entity IDs (job_id, page_id) in all logs
- Add timing logs for operations >1 second
"""

import time
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from pagegen.core.logging import db_logger, get_logger
from pagegen.models.generation_job import (
    MAX_ATTEMPTS,
    TERMINAL_PAGE_STATUSES,
    GenerationJob,
    JobPage,
    JobStatus,
    PageStatus,
)

logger = get_logger(__name__)

SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second

# Pages are inserted in batches of this size within the job's transaction
PAGE_INSERT_BATCH_SIZE = 25

OPEN_JOB_STATUSES = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)

EXHAUSTED_ERROR_MESSAGE = f"Claim expired after {MAX_ATTEMPTS} attempts"


def _check_slow(query: str, start_time: float, table: str) -> float:
    duration_ms = (time.monotonic() - start_time) * 1000
    if duration_ms > SLOW_OPERATION_THRESHOLD_MS:
        db_logger.slow_query(query=query, duration_ms=duration_ms, table=table)
    return duration_ms


class GenerationJobRepository:
    """Repository for GenerationJob persistence and counter updates."""

    TABLE_NAME = "generation_jobs"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        business_id: str,
        page_type: str,
        total_pages: int,
        request_id: str | None = None,
    ) -> GenerationJob:
        """Insert a pending job. Flushes but does not commit."""
        try:
            job = GenerationJob(
                business_id=business_id,
                page_type=page_type,
                status=JobStatus.PENDING.value,
                total_pages=total_pages,
                completed_pages=0,
                failed_pages=0,
                cost_total_usd=0.0,
                request_id=request_id,
            )
            self.session.add(job)
            await self.session.flush()
            logger.debug(
                "Generation job inserted",
                extra={"job_id": job.id, "business_id": business_id},
            )
            return job
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Creating job business_id={business_id}",
            )
            raise

    async def get_by_id(
        self, job_id: str, *, refresh: bool = False
    ) -> GenerationJob | None:
        """Get a job by ID.

        Pass refresh=True after a guarded UPDATE to reload the row instead of
        returning the stale identity-map copy.
        """
        stmt = select(GenerationJob).where(GenerationJob.id == job_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_business(self, business_id: str) -> list[GenerationJob]:
        """List jobs for a business, newest first."""
        result = await self.session.execute(
            select(GenerationJob)
            .where(GenerationJob.business_id == business_id)
            .order_by(GenerationJob.created_at.desc())
        )
        return list(result.scalars().all())

    async def mark_started(self, job_id: str) -> bool:
        """Move a pending job to processing. Returns True if this call did it."""
        result = await self.session.execute(
            update(GenerationJob)
            .where(
                GenerationJob.id == job_id,
                GenerationJob.status == JobStatus.PENDING.value,
            )
            .values(status=JobStatus.PROCESSING.value, started_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        started = result.rowcount == 1
        if started:
            logger.info(
                "Job status changed",
                extra={
                    "job_id": job_id,
                    "from_status": JobStatus.PENDING.value,
                    "to_status": JobStatus.PROCESSING.value,
                },
            )
        return started

    async def increment_counters(
        self, job_id: str, succeeded: bool, cost_usd: float = 0.0
    ) -> bool:
        """Count one finished page against the job.

        The increment only applies while completed_pages + failed_pages is
        below total_pages. Returns False when the guard rejected it.
        """
        start_time = time.monotonic()
        column = "completed_pages" if succeeded else "failed_pages"
        values: dict[str, Any] = {
            column: getattr(GenerationJob, column) + 1,
            "cost_total_usd": GenerationJob.cost_total_usd + cost_usd,
        }
        try:
            result = await self.session.execute(
                update(GenerationJob)
                .where(
                    GenerationJob.id == job_id,
                    GenerationJob.completed_pages + GenerationJob.failed_pages
                    < GenerationJob.total_pages,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Incrementing {column} job_id={job_id}",
            )
            raise

        _check_slow(f"UPDATE generation_jobs SET {column}", start_time, self.TABLE_NAME)
        applied = result.rowcount == 1
        if not applied:
            logger.warning(
                "Job counter increment rejected",
                extra={"job_id": job_id, "column": column},
            )
        return applied

    async def finalize_if_done(self, job_id: str) -> bool:
        """Flip the job to its terminal status once every page is counted.

        The job becomes failed iff every page failed, otherwise completed.
        Returns True only for the call that performed the transition.
        """
        result = await self.session.execute(
            update(GenerationJob)
            .where(
                GenerationJob.id == job_id,
                GenerationJob.status.in_(OPEN_JOB_STATUSES),
                GenerationJob.completed_pages + GenerationJob.failed_pages
                >= GenerationJob.total_pages,
            )
            .values(
                status=case(
                    (
                        GenerationJob.failed_pages == GenerationJob.total_pages,
                        JobStatus.FAILED.value,
                    ),
                    else_=JobStatus.COMPLETED.value,
                ),
                completed_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_webhook_sent(self, job_id: str) -> bool:
        """Set webhook_sent_at if unset. Returns True for the single winner."""
        result = await self.session.execute(
            update(GenerationJob)
            .where(
                GenerationJob.id == job_id,
                GenerationJob.webhook_sent_at.is_(None),
                GenerationJob.status.in_(
                    (JobStatus.COMPLETED.value, JobStatus.FAILED.value)
                ),
            )
            .values(webhook_sent_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class JobPageRepository:
    """Repository for JobPage claim, completion and listing."""

    TABLE_NAME = "job_pages"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def bulk_create(self, pages: list[JobPage]) -> list[JobPage]:
        """Insert pages in batches of PAGE_INSERT_BATCH_SIZE."""
        start_time = time.monotonic()
        try:
            for i in range(0, len(pages), PAGE_INSERT_BATCH_SIZE):
                self.session.add_all(pages[i : i + PAGE_INSERT_BATCH_SIZE])
                await self.session.flush()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Bulk inserting {len(pages)} pages",
            )
            raise

        duration_ms = _check_slow("INSERT INTO job_pages (bulk)", start_time, self.TABLE_NAME)
        logger.debug(
            "Job pages inserted",
            extra={"count": len(pages), "duration_ms": round(duration_ms, 2)},
        )
        return pages

    async def get(self, page_id: str, job_id: str | None = None) -> JobPage | None:
        stmt = select(JobPage).where(JobPage.id == page_id)
        if job_id is not None:
            stmt = stmt.where(JobPage.job_id == job_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def claim_next(self, job_id: str, worker_id: str) -> JobPage | None:
        """Atomically claim the oldest queued page of a job.

        On PostgreSQL the candidate row is locked with FOR UPDATE SKIP LOCKED
        so concurrent claimers pick different rows. SQLite serializes writers
        and ignores the locking clause.
        """
        start_time = time.monotonic()
        # Aliased so the subquery is not correlated to the UPDATE target
        queued = aliased(JobPage)
        candidate = (
            select(queued.id)
            .where(
                queued.job_id == job_id,
                queued.status == PageStatus.QUEUED.value,
                queued.attempts < MAX_ATTEMPTS,
            )
            .order_by(queued.created_at.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(JobPage)
            .where(JobPage.id == candidate)
            .values(
                status=PageStatus.PROCESSING.value,
                worker_id=worker_id,
                claimed_at=datetime.now(UTC),
                attempts=JobPage.attempts + 1,
            )
            .returning(JobPage)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        try:
            result = await self.session.execute(stmt)
            page = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Claiming page job_id={job_id} worker_id={worker_id}",
            )
            raise

        _check_slow("UPDATE job_pages (claim)", start_time, self.TABLE_NAME)
        return page

    async def mark_processing(self, page_id: str, worker_id: str) -> JobPage | None:
        """Claim a specific page unless it is already terminal."""
        result = await self.session.execute(
            update(JobPage)
            .where(
                JobPage.id == page_id,
                JobPage.status.not_in(tuple(TERMINAL_PAGE_STATUSES)),
            )
            .values(
                status=PageStatus.PROCESSING.value,
                worker_id=worker_id,
                claimed_at=datetime.now(UTC),
                attempts=JobPage.attempts + 1,
            )
            .returning(JobPage)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def complete(
        self, page_id: str, job_id: str, values: dict[str, Any]
    ) -> JobPage | None:
        """Move a processing page to a terminal status.

        Returns None when the page is missing or not processing.
        """
        try:
            result = await self.session.execute(
                update(JobPage)
                .where(
                    JobPage.id == page_id,
                    JobPage.job_id == job_id,
                    JobPage.status == PageStatus.PROCESSING.value,
                )
                .values(**values, completed_at=datetime.now(UTC))
                .returning(JobPage)
                .execution_options(synchronize_session=False, populate_existing=True)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Completing page page_id={page_id}",
            )
            raise

    def _stale_claims(self, older_than: timedelta, job_id: str | None) -> list[Any]:
        conditions = [
            JobPage.status == PageStatus.PROCESSING.value,
            JobPage.claimed_at < datetime.now(UTC) - older_than,
        ]
        if job_id is not None:
            conditions.append(JobPage.job_id == job_id)
        return conditions

    async def release_stale(
        self, older_than: timedelta, job_id: str | None = None
    ) -> int:
        """Return stale processing pages with attempts left to the queue."""
        result = await self.session.execute(
            update(JobPage)
            .where(
                *self._stale_claims(older_than, job_id),
                JobPage.attempts < MAX_ATTEMPTS,
            )
            .values(status=PageStatus.QUEUED.value, worker_id=None, claimed_at=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def fail_exhausted(
        self, older_than: timedelta, job_id: str | None = None
    ) -> list[str]:
        """Fail stale processing pages that have used every attempt.

        Returns the job id of each failed page, one entry per page.
        """
        try:
            result = await self.session.execute(
                update(JobPage)
                .where(
                    *self._stale_claims(older_than, job_id),
                    JobPage.attempts >= MAX_ATTEMPTS,
                )
                .values(
                    status=PageStatus.FAILED.value,
                    error_message=EXHAUSTED_ERROR_MESSAGE,
                    completed_at=datetime.now(UTC),
                )
                .returning(JobPage.job_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Failing exhausted stale pages job_id={job_id}",
            )
            raise
        return list(result.scalars().all())

    async def status_counts(self, job_id: str) -> dict[str, int]:
        """Count pages per status. Every status is present, zero if absent."""
        result = await self.session.execute(
            select(JobPage.status, func.count(JobPage.id))
            .where(JobPage.job_id == job_id)
            .group_by(JobPage.status)
        )
        counts = {status.value: 0 for status in PageStatus}
        for status, count in result.all():
            if status in counts:
                counts[status] = count
        return counts

    async def list_pages(
        self,
        job_id: str,
        status: str | None = None,
        language: str | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[JobPage], int]:
        """List pages of a job with filters. Returns (pages, total)."""
        conditions = [JobPage.job_id == job_id]
        if status:
            conditions.append(JobPage.status == status)
        if language:
            conditions.append(JobPage.keyword_language == language)
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            conditions.append(
                or_(
                    func.lower(JobPage.keyword_text).like(pattern),
                    func.lower(JobPage.url_path).like(pattern),
                    func.lower(JobPage.city).like(pattern),
                )
            )

        total = await self.session.scalar(
            select(func.count(JobPage.id)).where(*conditions)
        )
        result = await self.session.execute(
            select(JobPage)
            .where(*conditions)
            .order_by(JobPage.created_at.asc(), JobPage.url_path.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0
