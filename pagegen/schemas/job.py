"""Pydantic schemas for generation jobs, job pages and worker operations.

Defines request/response models for:
- Job creation and preview (fan-out)
- Job status with per-status page counts
- Worker claim and complete operations
- Stale claim release
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pagegen.schemas.business import BusinessResponse, QuestionnaireResponse
from pagegen.schemas.prompt_template import PromptTemplateResponse

# Terminal statuses a worker may report for a page
VALID_COMPLETION_STATUSES = frozenset({"completed", "failed"})

# Page statuses accepted as list filters
VALID_PAGE_STATUSES = frozenset({"queued", "processing", "completed", "failed"})


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


# -----------------------------------------------------------------------------
# Job Schemas
# -----------------------------------------------------------------------------


class JobCreate(BaseModel):
    """Schema for creating a generation job."""

    page_type: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Recipe to fan out, e.g. 'keyword-service-area'",
    )


class JobResponse(BaseModel):
    """Schema for generation job response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    page_type: str
    status: str
    total_pages: int
    completed_pages: int
    failed_pages: int
    cost_total_usd: float
    request_id: str | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None
    webhook_sent_at: datetime | None


class JobCreateResponse(BaseModel):
    job: JobResponse
    total_pages_created: int


class JobDetailResponse(JobResponse):
    """Job with live page counts by status."""

    queued_count: int = 0
    processing_count: int = 0
    completed_count: int = 0
    failed_count: int = 0


class JobListResponse(BaseModel):
    items: list[JobResponse]
    total: int


# -----------------------------------------------------------------------------
# Job Page Schemas
# -----------------------------------------------------------------------------


class JobPageResponse(BaseModel):
    """Schema for job page response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    job_id: str
    business_id: str
    keyword_id: str | None
    service_area_id: str | None
    location_id: str | None
    keyword_slug: str
    keyword_text: str
    keyword_language: str
    service_area_slug: str
    url_path: str
    city: str
    state: str
    location_status: str | None
    status: str
    attempts: int
    worker_id: str | None
    claimed_at: datetime | None
    content: dict[str, Any] | None
    section_count: int | None
    word_count: int | None
    model_name: str | None
    prompt_version: int | None
    generation_duration_ms: int | None
    input_tokens: int | None
    output_tokens: int | None
    cost_usd: float | None
    error_message: str | None
    created_at: datetime
    completed_at: datetime | None


class JobPageListResponse(BaseModel):
    items: list[JobPageResponse]
    pagination: Pagination


# -----------------------------------------------------------------------------
# Preview Schemas
# -----------------------------------------------------------------------------


class PreviewPage(BaseModel):
    """A page that a job would create, not persisted."""

    keyword_slug: str
    keyword_text: str
    keyword_language: str
    service_area_slug: str
    city: str
    state: str
    location_status: str | None
    url_path: str


class PreviewSummary(BaseModel):
    """Totals over the unfiltered product."""

    total_pages: int
    unique_keywords: int
    unique_service_areas: int
    by_language: dict[str, int]


class PreviewResponse(BaseModel):
    page_type: str
    items: list[PreviewPage]
    pagination: Pagination
    summary: PreviewSummary


# -----------------------------------------------------------------------------
# Worker Schemas
# -----------------------------------------------------------------------------


class ClaimRequest(BaseModel):
    """Schema for claiming the next queued page of a job."""

    worker_id: str = Field(..., min_length=1, max_length=100)


class ClaimResponse(BaseModel):
    """Claimed page plus everything a worker needs to generate it."""

    page: JobPageResponse
    business: BusinessResponse
    questionnaire: QuestionnaireResponse | None = None
    template: PromptTemplateResponse | None = None


class CompleteRequest(BaseModel):
    """Schema for reporting the outcome of a claimed page."""

    status: str = Field(..., description="completed or failed")
    content: dict[str, Any] | None = None
    section_count: int | None = Field(default=None, ge=0)
    model_name: str | None = Field(default=None, max_length=100)
    prompt_version: int | None = Field(default=None, ge=0)
    generation_duration_ms: int | None = Field(default=None, ge=0)
    word_count: int | None = Field(default=None, ge=0)
    input_tokens: int | None = Field(default=None, ge=0)
    output_tokens: int | None = Field(default=None, ge=0)
    error_message: str | None = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_COMPLETION_STATUSES:
            raise ValueError(
                f"Invalid status '{v}'. "
                f"Must be one of: {', '.join(sorted(VALID_COMPLETION_STATUSES))}"
            )
        return v


class CompleteResponse(BaseModel):
    page: JobPageResponse
    job: JobResponse


class ReleaseStaleResponse(BaseModel):
    released: int
    older_than_minutes: int
