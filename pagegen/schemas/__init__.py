"""Schemas layer - Pydantic models for request/response validation."""

from pagegen.schemas.business import (
    BusinessCreate,
    BusinessListResponse,
    BusinessResponse,
    BusinessUpdate,
    QuestionnaireResponse,
    QuestionnaireUpdate,
)
from pagegen.schemas.business_profile import (
    BusinessHoursEntry,
    BusinessHoursListResponse,
    BusinessHoursResponse,
    BusinessHoursUpdate,
    SocialLinkCreate,
    SocialLinkEnvelope,
    SocialLinkListResponse,
    SocialLinkResponse,
)
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
    PreviewPage,
    PreviewResponse,
    PreviewSummary,
    ReleaseStaleResponse,
)
from pagegen.schemas.keyword import (
    KeywordBulkCreate,
    KeywordBulkResponse,
    KeywordCreate,
    KeywordListResponse,
    KeywordResponse,
    KeywordUpdate,
    ServiceAreaBulkCreate,
    ServiceAreaBulkResponse,
    ServiceAreaCreate,
    ServiceAreaListResponse,
    ServiceAreaResponse,
    ServiceAreaUpdate,
)
from pagegen.schemas.location import (
    LocationBulkImport,
    LocationBulkImportResponse,
    LocationCreate,
    LocationListResponse,
    LocationResponse,
    LocationStatsResponse,
    LocationUpdate,
)
from pagegen.schemas.prompt_template import (
    PromptTemplateCreate,
    PromptTemplateListResponse,
    PromptTemplateResponse,
    PromptTemplateUpdate,
)
from pagegen.schemas.webhook import WebhookCreate, WebhookListResponse, WebhookResponse

__all__ = [
    "BusinessCreate",
    "BusinessHoursEntry",
    "BusinessHoursListResponse",
    "BusinessHoursResponse",
    "BusinessHoursUpdate",
    "BusinessListResponse",
    "BusinessResponse",
    "BusinessUpdate",
    "ClaimRequest",
    "ClaimResponse",
    "CompleteRequest",
    "CompleteResponse",
    "JobCreate",
    "JobCreateResponse",
    "JobDetailResponse",
    "JobListResponse",
    "JobPageListResponse",
    "JobPageResponse",
    "JobResponse",
    "KeywordBulkCreate",
    "KeywordBulkResponse",
    "KeywordCreate",
    "KeywordListResponse",
    "KeywordResponse",
    "KeywordUpdate",
    "LocationBulkImport",
    "LocationBulkImportResponse",
    "LocationCreate",
    "LocationListResponse",
    "LocationResponse",
    "LocationStatsResponse",
    "LocationUpdate",
    "Pagination",
    "PreviewPage",
    "PreviewResponse",
    "PreviewSummary",
    "PromptTemplateCreate",
    "PromptTemplateListResponse",
    "PromptTemplateResponse",
    "PromptTemplateUpdate",
    "QuestionnaireResponse",
    "QuestionnaireUpdate",
    "ReleaseStaleResponse",
    "ServiceAreaBulkCreate",
    "ServiceAreaBulkResponse",
    "ServiceAreaCreate",
    "ServiceAreaListResponse",
    "ServiceAreaResponse",
    "ServiceAreaUpdate",
    "SocialLinkCreate",
    "SocialLinkEnvelope",
    "SocialLinkListResponse",
    "SocialLinkResponse",
    "WebhookCreate",
    "WebhookListResponse",
    "WebhookResponse",
]
