"""Generation job API endpoints.

Business-scoped:
- POST /api/v1/businesses/{business_id}/jobs - Fan out a job into queued pages
- GET /api/v1/businesses/{business_id}/jobs/preview - Pages a job would create
- GET /api/v1/businesses/{business_id}/jobs - List jobs, newest first

Job-scoped (used by the dashboard and by polling workers):
- GET /api/v1/jobs/{job_id} - Job with live page counts
- GET /api/v1/jobs/{job_id}/pages - Pages with filters and pagination
- POST /api/v1/jobs/{job_id}/claim - Claim the next queued page
- POST /api/v1/jobs/{job_id}/pages/{page_id}/complete - Report a page outcome
- POST /api/v1/jobs/{job_id}/release-stale - Re-queue stale claims

Conflicts are returned as 409 with a specific code: JOB_CLOSED, NO_PAGES or
INVALID_PAGE_STATE.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.api.v1.deps import get_request_id
from pagegen.core.database import get_session
from pagegen.core.logging import get_logger
from pagegen.schemas.business import BusinessResponse, QuestionnaireResponse
from pagegen.schemas.job import (
    ClaimRequest,
    ClaimResponse,
    CompleteRequest,
    CompleteResponse,
    JobCreate,
    JobCreateResponse,
    JobDetailResponse,
    JobListResponse,
    JobPageListResponse,
    JobPageResponse,
    JobResponse,
    Pagination,
    PreviewResponse,
    ReleaseStaleResponse,
)
from pagegen.schemas.prompt_template import PromptTemplateResponse
from pagegen.services.job_fanout import JobFanoutService
from pagegen.services.job_pages import JobPageService

logger = get_logger(__name__)

business_jobs_router = APIRouter()
jobs_router = APIRouter()

MAX_PAGE_LIMIT = 200


def _total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0


# -----------------------------------------------------------------------------
# Business-scoped job routes
# -----------------------------------------------------------------------------


@business_jobs_router.post(
    "",
    response_model=JobCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a generation job",
    description=(
        "Fan the business's sources out into one queued page per combination. "
        "Rejected with 422 INSUFFICIENT_DATA before anything is written when "
        "the questionnaire is too incomplete or a source collection is empty."
    ),
)
async def create_job(
    request: Request,
    business_id: str,
    data: JobCreate,
    session: AsyncSession = Depends(get_session),
) -> JobCreateResponse:
    request_id = get_request_id(request)
    logger.debug(
        "Create job request",
        extra={
            "request_id": request_id,
            "business_id": business_id,
            "page_type": data.page_type,
        },
    )

    service = JobFanoutService(session)
    job, created = await service.create_job(
        business_id, data.page_type, request_id=request_id
    )
    return JobCreateResponse(
        job=JobResponse.model_validate(job), total_pages_created=created
    )


@business_jobs_router.get(
    "/preview",
    response_model=PreviewResponse,
    summary="Preview the pages of a job",
    description="Compute the page combinations without persisting anything.",
)
async def preview_job(
    request: Request,
    business_id: str,
    page_type: str = Query(..., description="Page type recipe"),
    search: str | None = Query(default=None, description="Keyword, city or URL search"),
    language: str | None = Query(default=None, description="Keyword language"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=MAX_PAGE_LIMIT),
    session: AsyncSession = Depends(get_session),
) -> PreviewResponse:
    logger.debug(
        "Preview job request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "page_type": page_type,
            "page": page,
            "limit": limit,
        },
    )

    service = JobFanoutService(session)
    preview = await service.preview(
        business_id,
        page_type,
        search=search,
        language=language,
        page=page,
        limit=limit,
    )
    return PreviewResponse.model_validate(preview)


@business_jobs_router.get(
    "", response_model=JobListResponse, summary="List a business's jobs"
)
async def list_jobs(
    request: Request,
    business_id: str,
    session: AsyncSession = Depends(get_session),
) -> JobListResponse:
    logger.debug(
        "List jobs request",
        extra={"request_id": get_request_id(request), "business_id": business_id},
    )

    service = JobPageService(session)
    jobs = await service.list_jobs(business_id)
    return JobListResponse(
        items=[JobResponse.model_validate(j) for j in jobs], total=len(jobs)
    )


# -----------------------------------------------------------------------------
# Job-scoped routes
# -----------------------------------------------------------------------------


@jobs_router.get(
    "/{job_id}", response_model=JobDetailResponse, summary="Get a job with page counts"
)
async def get_job(
    request: Request,
    job_id: str,
    session: AsyncSession = Depends(get_session),
) -> JobDetailResponse:
    logger.debug(
        "Get job request",
        extra={"request_id": get_request_id(request), "job_id": job_id},
    )

    service = JobPageService(session)
    job, counts = await service.get_job_detail(job_id)
    return JobDetailResponse(
        **JobResponse.model_validate(job).model_dump(),
        queued_count=counts.get("queued", 0),
        processing_count=counts.get("processing", 0),
        completed_count=counts.get("completed", 0),
        failed_count=counts.get("failed", 0),
    )


@jobs_router.get(
    "/{job_id}/pages", response_model=JobPageListResponse, summary="List a job's pages"
)
async def list_job_pages(
    request: Request,
    job_id: str,
    status_filter: str | None = Query(
        default=None, alias="status", description="Filter by page status"
    ),
    language: str | None = Query(default=None, description="Keyword language"),
    search: str | None = Query(default=None, description="Keyword, city or URL search"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=MAX_PAGE_LIMIT),
    session: AsyncSession = Depends(get_session),
) -> JobPageListResponse:
    logger.debug(
        "List job pages request",
        extra={
            "request_id": get_request_id(request),
            "job_id": job_id,
            "status": status_filter,
            "page": page,
            "limit": limit,
        },
    )

    service = JobPageService(session)
    pages, total = await service.list_pages(
        job_id,
        status=status_filter,
        language=language,
        search=search,
        page=page,
        limit=limit,
    )
    return JobPageListResponse(
        items=[JobPageResponse.model_validate(p) for p in pages],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=_total_pages(total, limit)
        ),
    )


@jobs_router.post(
    "/{job_id}/claim",
    response_model=ClaimResponse,
    summary="Claim the next queued page",
    responses={
        409: {
            "description": "Job closed or nothing to claim",
            "content": {
                "application/json": {
                    "example": {
                        "error": "No pages available to claim",
                        "code": "NO_PAGES",
                        "request_id": "<request_id>",
                    }
                }
            },
        }
    },
)
async def claim_page(
    request: Request,
    job_id: str,
    data: ClaimRequest,
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    logger.debug(
        "Claim page request",
        extra={
            "request_id": get_request_id(request),
            "job_id": job_id,
            "worker_id": data.worker_id,
        },
    )

    service = JobPageService(session)
    claimed = await service.claim(job_id, data.worker_id)

    questionnaire = claimed["questionnaire"]
    template = claimed["template"]
    return ClaimResponse(
        page=JobPageResponse.model_validate(claimed["page"]),
        business=BusinessResponse.model_validate(claimed["business"]),
        questionnaire=(
            QuestionnaireResponse.model_validate(questionnaire)
            if questionnaire is not None
            else None
        ),
        template=(
            PromptTemplateResponse.model_validate(template)
            if template is not None
            else None
        ),
    )


@jobs_router.post(
    "/{job_id}/pages/{page_id}/complete",
    response_model=CompleteResponse,
    summary="Report a claimed page's outcome",
)
async def complete_page(
    request: Request,
    job_id: str,
    page_id: str,
    data: CompleteRequest,
    session: AsyncSession = Depends(get_session),
) -> CompleteResponse:
    logger.debug(
        "Complete page request",
        extra={
            "request_id": get_request_id(request),
            "job_id": job_id,
            "page_id": page_id,
            "status": data.status,
        },
    )

    service = JobPageService(session)
    page, job = await service.complete(job_id, page_id, data)
    return CompleteResponse(
        page=JobPageResponse.model_validate(page),
        job=JobResponse.model_validate(job),
    )


@jobs_router.post(
    "/{job_id}/release-stale",
    response_model=ReleaseStaleResponse,
    summary="Re-queue stale claims",
    description="Processing pages claimed longer ago than the threshold go back to queued.",
)
async def release_stale(
    request: Request,
    job_id: str,
    older_than_minutes: int = Query(default=5, ge=1),
    session: AsyncSession = Depends(get_session),
) -> ReleaseStaleResponse:
    logger.debug(
        "Release stale request",
        extra={
            "request_id": get_request_id(request),
            "job_id": job_id,
            "older_than_minutes": older_than_minutes,
        },
    )

    service = JobPageService(session)
    released = await service.release_stale(older_than_minutes, job_id=job_id)
    return ReleaseStaleResponse(
        released=released, older_than_minutes=older_than_minutes
    )
