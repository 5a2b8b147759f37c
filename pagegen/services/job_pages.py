"""Job status, page claim/complete and stale-claim release.

This is the single write path for page outcomes. The HTTP complete endpoint
and the queue consumer both go through JobPageService.complete(), so counter
updates, job finalization and webhook dispatch behave the same in either
dispatch mode.

Completion sequence:
1. Guarded page UPDATE (processing -> completed | failed)
2. Guarded job counter increment (+ cost_total_usd)
3. Guarded finalize (status flips once the counters reach total_pages)
4. COMMIT
5. If this call finalized the job and wins the webhook_sent_at marker,
   COMMIT the marker and dispatch webhooks
"""

from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.config import get_settings
from pagegen.core.database import session_scope
from pagegen.core.exceptions import ConflictError, NotFoundError, ValidationError
from pagegen.core.logging import generation_logger, get_logger
from pagegen.models.business import Business, Questionnaire
from pagegen.models.generation_job import (
    TERMINAL_JOB_STATUSES,
    GenerationJob,
    JobPage,
    PageStatus,
)
from pagegen.models.prompt_template import PromptTemplate
from pagegen.repositories.generation_job import (
    GenerationJobRepository,
    JobPageRepository,
)
from pagegen.schemas.job import VALID_PAGE_STATUSES, CompleteRequest
from pagegen.services.business import get_business_or_404
from pagegen.services.prompt_template import get_active_template
from pagegen.services.webhook import WebhookService

logger = get_logger(__name__)

DEFAULT_SECTION_COUNT = 3
DEFAULT_ERROR_MESSAGE = "Unknown error"


def calculate_cost(input_tokens: int | None, output_tokens: int | None) -> float:
    """USD cost of one completion at the configured per-1k-token prices."""
    settings = get_settings()
    return (input_tokens or 0) / 1000 * settings.claude_input_cost_per_1k + (
        output_tokens or 0
    ) / 1000 * settings.claude_output_cost_per_1k


class JobPageService:
    """Job queries and the page claim/complete lifecycle."""

    def __init__(
        self, session: AsyncSession, webhook_service: WebhookService | None = None
    ) -> None:
        self.session = session
        self.jobs = GenerationJobRepository(session)
        self.pages = JobPageRepository(session)
        self._webhook_service = webhook_service

    @property
    def webhook_service(self) -> WebhookService:
        if self._webhook_service is None:
            self._webhook_service = WebhookService(self.session)
        return self._webhook_service

    async def get_job(self, job_id: str, *, refresh: bool = False) -> GenerationJob:
        job = await self.jobs.get_by_id(job_id, refresh=refresh)
        if job is None:
            raise NotFoundError("GenerationJob", job_id)
        return job

    async def get_job_detail(self, job_id: str) -> tuple[GenerationJob, dict[str, int]]:
        """Job plus live page counts per status."""
        job = await self.get_job(job_id)
        counts = await self.pages.status_counts(job_id)
        return job, counts

    async def list_jobs(self, business_id: str) -> list[GenerationJob]:
        await get_business_or_404(self.session, business_id)
        return await self.jobs.list_for_business(business_id)

    async def list_pages(
        self,
        job_id: str,
        status: str | None = None,
        language: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[JobPage], int]:
        """List a job's pages with filters and page/limit pagination."""
        await self.get_job(job_id)
        if status and status not in VALID_PAGE_STATUSES:
            raise ValidationError(f"Invalid page status '{status}'")
        return await self.pages.list_pages(
            job_id,
            status=status,
            language=language,
            search=search,
            offset=(page - 1) * limit,
            limit=limit,
        )

    async def load_page_context(
        self, job: GenerationJob
    ) -> tuple[Business, Questionnaire | None, PromptTemplate | None]:
        """Business, questionnaire and active template for a job's pages."""
        business = await get_business_or_404(self.session, job.business_id)
        questionnaire = await self.session.scalar(
            select(Questionnaire).where(Questionnaire.business_id == job.business_id)
        )
        template = await get_active_template(
            self.session, job.business_id, job.page_type
        )
        return business, questionnaire, template

    async def claim(self, job_id: str, worker_id: str) -> dict[str, Any]:
        """Claim the next queued page of a job for a worker.

        Raises:
            NotFoundError: Job does not exist
            ConflictError: JOB_CLOSED if the job is terminal, NO_PAGES if
                nothing is claimable

        Returns:
            Dict with the claimed page, business, questionnaire and template
        """
        job = await self.get_job(job_id)
        if job.status in TERMINAL_JOB_STATUSES:
            raise ConflictError(f"Job is {job.status}", code="JOB_CLOSED")

        await self.jobs.mark_started(job_id)
        page = await self.pages.claim_next(job_id, worker_id)
        if page is None:
            await self.session.commit()
            generation_logger.no_pages_available(job_id, worker_id)
            raise ConflictError("No pages available to claim", code="NO_PAGES")

        generation_logger.page_claimed(job_id, page.id, worker_id, page.attempts)

        business, questionnaire, template = await self.load_page_context(job)
        return {
            "page": page,
            "business": business,
            "questionnaire": questionnaire,
            "template": template,
        }

    async def start_page(
        self, job_id: str, page_id: str, worker_id: str
    ) -> JobPage | None:
        """Claim a specific page for the queue consumer.

        Returns None when the page is missing or already terminal.
        """
        page = await self.pages.get(page_id, job_id)
        if page is None or page.is_terminal:
            return None

        await self.jobs.mark_started(job_id)
        started = await self.pages.mark_processing(page_id, worker_id)
        await self.session.commit()

        if started is not None:
            generation_logger.page_claimed(job_id, page_id, worker_id, started.attempts)
        return started

    def _outcome_values(self, data: CompleteRequest) -> tuple[dict[str, Any], float]:
        cost = calculate_cost(data.input_tokens, data.output_tokens)
        values: dict[str, Any] = {
            "status": data.status,
            "input_tokens": data.input_tokens,
            "output_tokens": data.output_tokens,
            "model_name": data.model_name,
            "generation_duration_ms": data.generation_duration_ms,
        }
        if data.status == PageStatus.COMPLETED.value:
            values.update(
                content=data.content,
                section_count=(
                    data.section_count
                    if data.section_count is not None
                    else DEFAULT_SECTION_COUNT
                ),
                word_count=data.word_count,
                prompt_version=data.prompt_version,
                cost_usd=cost,
                error_message=None,
            )
        else:
            values.update(
                error_message=data.error_message or DEFAULT_ERROR_MESSAGE,
                cost_usd=cost if (data.input_tokens or data.output_tokens) else None,
            )
        return values, cost

    async def complete(
        self, job_id: str, page_id: str, data: CompleteRequest
    ) -> tuple[JobPage, GenerationJob]:
        """Record a processing page's outcome and advance the job.

        Raises:
            NotFoundError: Job or page does not exist
            ConflictError: INVALID_PAGE_STATE if the page is not processing
        """
        await self.get_job(job_id)
        page = await self.pages.get(page_id, job_id)
        if page is None:
            raise NotFoundError("JobPage", page_id)
        if page.status != PageStatus.PROCESSING.value:
            raise ConflictError(
                f"Page is {page.status}, expected processing",
                code="INVALID_PAGE_STATE",
            )

        values, cost = self._outcome_values(data)
        updated = await self.pages.complete(page_id, job_id, values)
        if updated is None:
            raise ConflictError(
                "Page is no longer processing", code="INVALID_PAGE_STATE"
            )

        succeeded = data.status == PageStatus.COMPLETED.value
        await self.jobs.increment_counters(job_id, succeeded, cost_usd=cost)
        finalized = await self.jobs.finalize_if_done(job_id)
        await self.session.commit()

        generation_logger.page_completed(
            job_id, page_id, data.status, data.generation_duration_ms, data.error_message
        )
        if data.input_tokens or data.output_tokens:
            generation_logger.page_cost(
                job_id, page_id, data.input_tokens or 0, data.output_tokens or 0, cost
            )

        job = await self.get_job(job_id, refresh=True)
        if finalized:
            generation_logger.job_finalized(
                job_id, job.status, job.completed_pages, job.failed_pages
            )
            await self._notify(job)

        return updated, job

    async def _notify(self, job: GenerationJob) -> None:
        """Dispatch webhooks once per job, guarded by webhook_sent_at."""
        if not await self.jobs.mark_webhook_sent(job.id):
            return
        await self.session.commit()
        job = await self.get_job(job.id, refresh=True)
        await self.webhook_service.dispatch_job_event(job)

    async def release_stale(
        self, older_than_minutes: int, job_id: str | None = None
    ) -> int:
        """Re-queue processing pages whose claim is older than the threshold.

        Stale pages that already used MAX_ATTEMPTS are failed instead and
        counted against their job, which may finalize it. Returns the number
        of re-queued pages.
        """
        if job_id is not None:
            await self.get_job(job_id)

        older_than = timedelta(minutes=older_than_minutes)
        expired_job_ids = await self.pages.fail_exhausted(older_than, job_id=job_id)
        released = await self.pages.release_stale(older_than, job_id=job_id)

        for expired_job_id in expired_job_ids:
            await self.jobs.increment_counters(expired_job_id, succeeded=False)
        finalized = []
        for affected in dict.fromkeys(expired_job_ids):
            if await self.jobs.finalize_if_done(affected):
                finalized.append(affected)
        await self.session.commit()
        generation_logger.stale_pages_released(
            released, job_id, expired=len(expired_job_ids)
        )

        for finalized_id in finalized:
            job = await self.get_job(finalized_id, refresh=True)
            generation_logger.job_finalized(
                finalized_id, job.status, job.completed_pages, job.failed_pages
            )
            await self._notify(job)
        return released


async def release_stale_claims_job() -> int:
    """Scheduled sweep: release stale claims across every job."""
    settings = get_settings()
    async with session_scope() as session:
        return await JobPageService(session).release_stale(
            settings.stale_claim_timeout_minutes
        )
