"""Job fan-out: turn a business's sources into one page per combination.

A page type names a recipe, the Cartesian product of two source
collections:

    keyword-service-area   keywords x service areas
    keyword-location       keywords x locations
    service-service-area   services x service areas
    service-location       services x locations
    blog-service-area      keywords x service areas
    blog-location          keywords x locations

Keywords and service areas must be active. Locations must be active or
upcoming and not the headquarters. Services come from the questionnaire's
services.offerings[] list; on service recipes the service plays the keyword
role in the page (slug, text, URL).

create_job() writes the job and all of its pages in one transaction, then
optionally enqueues one SQS message per page. preview() computes the same
product without writing anything.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.config import get_settings
from pagegen.core.exceptions import InsufficientDataError, ValidationError
from pagegen.core.logging import generation_logger, get_logger
from pagegen.integrations.sqs import SQSClient, SQSError, get_sqs_client
from pagegen.models.business import Questionnaire
from pagegen.models.generation_job import GenerationJob, JobPage, PageStatus
from pagegen.models.keyword import Keyword
from pagegen.models.location import Location, LocationStatus
from pagegen.models.service_area import ServiceArea
from pagegen.repositories.generation_job import (
    GenerationJobRepository,
    JobPageRepository,
)
from pagegen.services.business import get_business_or_404
from pagegen.utils.slug import build_url_path, to_city_state_slug

logger = get_logger(__name__)

KEYWORDS = "keywords"
SERVICES = "services"
SERVICE_AREAS = "service_areas"
LOCATIONS = "locations"

# page type -> (subject collection, place collection)
PAGE_TYPE_RECIPES: dict[str, tuple[str, str]] = {
    "keyword-service-area": (KEYWORDS, SERVICE_AREAS),
    "keyword-location": (KEYWORDS, LOCATIONS),
    "service-service-area": (SERVICES, SERVICE_AREAS),
    "service-location": (SERVICES, LOCATIONS),
    "blog-service-area": (KEYWORDS, SERVICE_AREAS),
    "blog-location": (KEYWORDS, LOCATIONS),
}

# Legacy names still sent by older clients
PAGE_TYPE_ALIASES: dict[str, str] = {
    "service-area": "keyword-service-area",
    "location-keyword": "keyword-location",
}

ELIGIBLE_LOCATION_STATUSES = (
    LocationStatus.ACTIVE.value,
    LocationStatus.UPCOMING.value,
)


def normalize_page_type(page_type: str) -> str | None:
    """Map a page type or legacy alias to its canonical name, or None."""
    value = page_type.strip().lower()
    value = PAGE_TYPE_ALIASES.get(value, value)
    return value if value in PAGE_TYPE_RECIPES else None


def require_page_type(page_type: str) -> str:
    """Canonical page type, or ValidationError (400) for unknown types."""
    canonical = normalize_page_type(page_type)
    if canonical is None:
        raise ValidationError(
            f"Unsupported page_type '{page_type}'. "
            f"Must be one of: {', '.join(sorted(PAGE_TYPE_RECIPES))}"
        )
    return canonical


def is_blog_page_type(page_type: str) -> bool:
    return page_type.startswith("blog-")


@dataclass
class ServiceOffering:
    """A service listed in the questionnaire."""

    name: str
    slug: str
    name_es: str | None = None
    is_primary: bool = False


def service_slug(offering: dict[str, Any]) -> str:
    """Use the explicit slug, else the lowercased name with whitespace runs as '-'."""
    slug = offering.get("slug")
    if slug:
        return str(slug)
    return "-".join(str(offering["name"]).lower().split())


def services_from_questionnaire(data: dict[str, Any] | None) -> list[ServiceOffering]:
    """Extract service offerings from questionnaire data.

    Entries without a name are ignored and duplicate slugs keep the first.
    """
    services = (data or {}).get("services") or {}
    offerings = services.get("offerings") if isinstance(services, dict) else None
    if not isinstance(offerings, list):
        return []

    result: list[ServiceOffering] = []
    seen: set[str] = set()
    for offering in offerings:
        if not isinstance(offering, dict) or not str(offering.get("name") or "").strip():
            continue
        slug = service_slug(offering)
        if slug in seen:
            continue
        seen.add(slug)
        result.append(
            ServiceOffering(
                name=str(offering["name"]).strip(),
                slug=slug,
                name_es=offering.get("nameEs") or None,
                is_primary=bool(offering.get("isPrimary")),
            )
        )
    return result


def primary_service_name(data: dict[str, Any] | None) -> str | None:
    """The offering flagged isPrimary, else the first offering."""
    services = services_from_questionnaire(data)
    for service in services:
        if service.is_primary:
            return service.name
    return services[0].name if services else None


@dataclass
class PagePlan:
    """One planned page: a subject (keyword or service) in a place."""

    keyword_slug: str
    keyword_text: str
    keyword_language: str
    service_area_slug: str
    city: str
    state: str
    keyword_id: str | None = None
    service_area_id: str | None = None
    location_id: str | None = None
    location_status: str | None = None

    @property
    def url_path(self) -> str:
        return build_url_path(self.keyword_slug, self.service_area_slug)

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword_slug": self.keyword_slug,
            "keyword_text": self.keyword_text,
            "keyword_language": self.keyword_language,
            "service_area_slug": self.service_area_slug,
            "city": self.city,
            "state": self.state,
            "location_status": self.location_status,
            "url_path": self.url_path,
        }


@dataclass
class FanoutSources:
    """Source collections loaded for one business."""

    questionnaire_data: dict[str, Any] = field(default_factory=dict)
    completeness_score: int = 0
    keywords: list[Keyword] = field(default_factory=list)
    service_areas: list[ServiceArea] = field(default_factory=list)
    locations: list[Location] = field(default_factory=list)
    services: list[ServiceOffering] = field(default_factory=list)

    def collection(self, name: str) -> list[Any]:
        return list(getattr(self, name))


def _subjects(sources: FanoutSources, kind: str) -> list[dict[str, Any]]:
    if kind == KEYWORDS:
        return [
            {
                "keyword_id": kw.id,
                "keyword_slug": kw.slug,
                "keyword_text": kw.keyword,
                "keyword_language": kw.language or "en",
            }
            for kw in sources.keywords
        ]
    return [
        {
            "keyword_id": None,
            "keyword_slug": service.slug,
            "keyword_text": service.name,
            "keyword_language": "en",
        }
        for service in sources.services
    ]


def _places(sources: FanoutSources, kind: str) -> list[dict[str, Any]]:
    if kind == SERVICE_AREAS:
        return [
            {
                "service_area_id": area.id,
                "service_area_slug": area.slug,
                "city": area.city,
                "state": area.state,
            }
            for area in sources.service_areas
        ]

    places: list[dict[str, Any]] = []
    seen: set[str] = set()
    for location in sources.locations:
        slug = to_city_state_slug(location.city, location.state)
        if slug in seen:
            continue
        seen.add(slug)
        places.append(
            {
                "location_id": location.id,
                "service_area_slug": slug,
                "city": location.city,
                "state": location.state,
                "location_status": location.status or LocationStatus.ACTIVE.value,
            }
        )
    return places


def build_page_plans(page_type: str, sources: FanoutSources) -> list[PagePlan]:
    """Cartesian product for a canonical page type, subject-major order."""
    subject_kind, place_kind = PAGE_TYPE_RECIPES[page_type]
    places = _places(sources, place_kind)
    return [
        PagePlan(**subject, **place)
        for subject in _subjects(sources, subject_kind)
        for place in places
    ]


def _missing_collections(page_type: str, sources: FanoutSources) -> list[str]:
    subject_kind, place_kind = PAGE_TYPE_RECIPES[page_type]
    lengths = {
        subject_kind: len(_subjects(sources, subject_kind)),
        place_kind: len(_places(sources, place_kind)),
    }
    return [name for name, count in lengths.items() if count == 0]


class JobFanoutService:
    """Creates generation jobs and previews their pages."""

    def __init__(
        self, session: AsyncSession, sqs_client: SQSClient | None = None
    ) -> None:
        self.session = session
        self._sqs_client = sqs_client
        self.jobs = GenerationJobRepository(session)
        self.pages = JobPageRepository(session)

    async def load_sources(self, business_id: str) -> FanoutSources:
        """Load the eligible source rows for a business, in fan-out order."""
        questionnaire = await self.session.scalar(
            select(Questionnaire).where(Questionnaire.business_id == business_id)
        )
        keywords = await self.session.scalars(
            select(Keyword)
            .where(Keyword.business_id == business_id, Keyword.is_active.is_(True))
            .order_by(Keyword.priority.desc(), Keyword.keyword)
        )
        service_areas = await self.session.scalars(
            select(ServiceArea)
            .where(
                ServiceArea.business_id == business_id,
                ServiceArea.is_active.is_(True),
            )
            .order_by(ServiceArea.priority.desc(), ServiceArea.city)
        )
        locations = await self.session.scalars(
            select(Location)
            .where(
                Location.business_id == business_id,
                Location.status.in_(ELIGIBLE_LOCATION_STATUSES),
                Location.is_headquarters.is_(False),
            )
            .order_by(Location.priority.desc(), Location.state, Location.city)
        )

        data = questionnaire.data if questionnaire is not None else {}
        return FanoutSources(
            questionnaire_data=data or {},
            completeness_score=questionnaire.completeness_score if questionnaire else 0,
            keywords=list(keywords.all()),
            service_areas=list(service_areas.all()),
            locations=list(locations.all()),
            services=services_from_questionnaire(data),
        )

    async def create_job(
        self,
        business_id: str,
        page_type: str,
        request_id: str | None = None,
    ) -> tuple[GenerationJob, int]:
        """Create a job and all of its queued pages.

        Raises:
            ValidationError: Unknown page type (400)
            NotFoundError: Business does not exist (404)
            InsufficientDataError: Questionnaire too incomplete or a source
                collection is empty (422). Nothing is written.

        Returns:
            Tuple of (job, number of pages created)
        """
        settings = get_settings()
        canonical = require_page_type(page_type)
        await get_business_or_404(self.session, business_id)
        sources = await self.load_sources(business_id)

        if sources.completeness_score < settings.min_questionnaire_completeness:
            reason = (
                f"Questionnaire completeness {sources.completeness_score}% is below "
                f"the required {settings.min_questionnaire_completeness}%"
            )
            generation_logger.job_rejected(business_id, canonical, reason)
            raise InsufficientDataError(reason)

        missing = _missing_collections(canonical, sources)
        if missing:
            reason = f"No eligible {' or '.join(m.replace('_', ' ') for m in missing)} for {canonical}"
            generation_logger.job_rejected(business_id, canonical, reason)
            raise InsufficientDataError(reason)

        plans = build_page_plans(canonical, sources)
        job = await self.jobs.create(
            business_id=business_id,
            page_type=canonical,
            total_pages=len(plans),
            request_id=request_id,
        )
        pages = [
            JobPage(
                job_id=job.id,
                business_id=business_id,
                keyword_id=plan.keyword_id,
                service_area_id=plan.service_area_id,
                location_id=plan.location_id,
                keyword_slug=plan.keyword_slug,
                keyword_text=plan.keyword_text,
                keyword_language=plan.keyword_language,
                service_area_slug=plan.service_area_slug,
                url_path=plan.url_path,
                city=plan.city,
                state=plan.state,
                location_status=plan.location_status,
                status=PageStatus.QUEUED.value,
                attempts=0,
            )
            for plan in plans
        ]
        await self.pages.bulk_create(pages)
        await self.session.commit()

        generation_logger.job_created(job.id, business_id, canonical, len(pages))

        if settings.job_dispatch_mode == "sqs":
            await self._enqueue_pages(job, pages)

        return job, len(pages)

    async def _enqueue_pages(self, job: GenerationJob, pages: list[JobPage]) -> None:
        """Send one queue message per page. Failures leave pages claimable."""
        client = self._sqs_client or get_sqs_client()
        messages = [
            {
                "job_id": job.id,
                "page_id": page.id,
                "business_id": job.business_id,
                "page_type": job.page_type,
                "request_id": job.request_id,
            }
            for page in pages
        ]
        try:
            await client.send_page_messages(messages)
        except SQSError as e:
            logger.error(
                "Failed to enqueue job pages; pages remain queued for polling workers",
                extra={
                    "job_id": job.id,
                    "page_count": len(messages),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )

    async def preview(
        self,
        business_id: str,
        page_type: str,
        search: str | None = None,
        language: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict[str, Any]:
        """Compute the pages a job would create, with filters and pagination."""
        canonical = require_page_type(page_type)
        await get_business_or_404(self.session, business_id)
        sources = await self.load_sources(business_id)
        plans = build_page_plans(canonical, sources)

        by_language: dict[str, int] = {"en": 0, "es": 0}
        for plan in plans:
            by_language[plan.keyword_language] = by_language.get(plan.keyword_language, 0) + 1
        summary = {
            "total_pages": len(plans),
            "unique_keywords": len({(p.keyword_slug, p.keyword_language) for p in plans}),
            "unique_service_areas": len({p.service_area_slug for p in plans}),
            "by_language": by_language,
        }

        filtered = plans
        if language:
            filtered = [p for p in filtered if p.keyword_language == language.lower()]
        if search and search.strip():
            needle = search.strip().lower()
            filtered = [
                p
                for p in filtered
                if needle in p.keyword_text.lower()
                or needle in p.city.lower()
                or needle in p.url_path.lower()
            ]

        start = (page - 1) * limit
        return {
            "page_type": canonical,
            "items": [p.to_dict() for p in filtered[start : start + limit]],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": len(filtered),
                "total_pages": math.ceil(len(filtered) / limit) if limit else 0,
            },
            "summary": summary,
        }
