"""Keyword and service area API endpoints.

Keywords:
- GET /api/v1/businesses/{business_id}/keywords - List (filter by language, is_active)
- POST /api/v1/businesses/{business_id}/keywords - Create a keyword
- POST /api/v1/businesses/{business_id}/keywords/bulk - Create many, skipping duplicates
- PUT /api/v1/businesses/{business_id}/keywords/{keyword_id} - Update a keyword
- DELETE /api/v1/businesses/{business_id}/keywords/{keyword_id} - Delete a keyword

Service areas:
- GET /api/v1/businesses/{business_id}/service-areas - List (filter by is_active)
- POST /api/v1/businesses/{business_id}/service-areas - Create a service area
- POST /api/v1/businesses/{business_id}/service-areas/bulk - Create many
- PUT /api/v1/businesses/{business_id}/service-areas/{area_id} - Update
- DELETE /api/v1/businesses/{business_id}/service-areas/{area_id} - Delete

A duplicate slug (per language, for keywords) returns 409 DUPLICATE_ERROR.
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.api.v1.deps import get_request_id
from pagegen.core.database import get_session
from pagegen.core.logging import get_logger
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
from pagegen.services.keyword import KeywordService
from pagegen.services.service_area import ServiceAreaService

logger = get_logger(__name__)

keywords_router = APIRouter()
service_areas_router = APIRouter()


# -----------------------------------------------------------------------------
# Keywords
# -----------------------------------------------------------------------------


@keywords_router.get("", response_model=KeywordListResponse, summary="List keywords")
async def list_keywords(
    request: Request,
    business_id: str,
    language: str | None = Query(default=None, description="Filter by language (en, es)"),
    is_active: bool | None = Query(default=None, description="Filter by active flag"),
    session: AsyncSession = Depends(get_session),
) -> KeywordListResponse:
    logger.debug(
        "List keywords request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "language": language,
            "is_active": is_active,
        },
    )

    service = KeywordService(session)
    keywords = await service.list_keywords(business_id, language=language, is_active=is_active)
    return KeywordListResponse(
        items=[KeywordResponse.model_validate(k) for k in keywords],
        total=len(keywords),
    )


@keywords_router.post(
    "",
    response_model=KeywordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a keyword",
)
async def create_keyword(
    request: Request,
    business_id: str,
    data: KeywordCreate,
    session: AsyncSession = Depends(get_session),
) -> KeywordResponse:
    logger.debug(
        "Create keyword request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "keyword": data.keyword,
            "language": data.language,
        },
    )

    service = KeywordService(session)
    keyword = await service.create_keyword(business_id, data)
    return KeywordResponse.model_validate(keyword)


@keywords_router.post(
    "/bulk",
    response_model=KeywordBulkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create many keywords",
    description="Create keywords in one request. Duplicates are reported in skipped.",
)
async def bulk_create_keywords(
    request: Request,
    business_id: str,
    data: KeywordBulkCreate,
    session: AsyncSession = Depends(get_session),
) -> KeywordBulkResponse:
    logger.debug(
        "Bulk create keywords request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "count": len(data.keywords),
        },
    )

    service = KeywordService(session)
    created, skipped = await service.bulk_create_keywords(business_id, data.keywords)
    return KeywordBulkResponse(
        created=[KeywordResponse.model_validate(k) for k in created],
        skipped=skipped,
    )


@keywords_router.put(
    "/{keyword_id}", response_model=KeywordResponse, summary="Update a keyword"
)
async def update_keyword(
    request: Request,
    business_id: str,
    keyword_id: str,
    data: KeywordUpdate,
    session: AsyncSession = Depends(get_session),
) -> KeywordResponse:
    logger.debug(
        "Update keyword request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "keyword_id": keyword_id,
        },
    )

    service = KeywordService(session)
    keyword = await service.update_keyword(business_id, keyword_id, data)
    return KeywordResponse.model_validate(keyword)


@keywords_router.delete(
    "/{keyword_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a keyword",
)
async def delete_keyword(
    request: Request,
    business_id: str,
    keyword_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    logger.debug(
        "Delete keyword request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "keyword_id": keyword_id,
        },
    )

    service = KeywordService(session)
    await service.delete_keyword(business_id, keyword_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -----------------------------------------------------------------------------
# Service areas
# -----------------------------------------------------------------------------


@service_areas_router.get(
    "", response_model=ServiceAreaListResponse, summary="List service areas"
)
async def list_service_areas(
    request: Request,
    business_id: str,
    is_active: bool | None = Query(default=None, description="Filter by active flag"),
    session: AsyncSession = Depends(get_session),
) -> ServiceAreaListResponse:
    logger.debug(
        "List service areas request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "is_active": is_active,
        },
    )

    service = ServiceAreaService(session)
    areas = await service.list_service_areas(business_id, is_active=is_active)
    return ServiceAreaListResponse(
        items=[ServiceAreaResponse.model_validate(a) for a in areas],
        total=len(areas),
    )


@service_areas_router.post(
    "",
    response_model=ServiceAreaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a service area",
)
async def create_service_area(
    request: Request,
    business_id: str,
    data: ServiceAreaCreate,
    session: AsyncSession = Depends(get_session),
) -> ServiceAreaResponse:
    logger.debug(
        "Create service area request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "city": data.city,
            "state": data.state,
        },
    )

    service = ServiceAreaService(session)
    area = await service.create_service_area(business_id, data)
    return ServiceAreaResponse.model_validate(area)


@service_areas_router.post(
    "/bulk",
    response_model=ServiceAreaBulkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create many service areas",
)
async def bulk_create_service_areas(
    request: Request,
    business_id: str,
    data: ServiceAreaBulkCreate,
    session: AsyncSession = Depends(get_session),
) -> ServiceAreaBulkResponse:
    logger.debug(
        "Bulk create service areas request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "count": len(data.service_areas),
        },
    )

    service = ServiceAreaService(session)
    created, skipped = await service.bulk_create_service_areas(
        business_id, data.service_areas
    )
    return ServiceAreaBulkResponse(
        created=[ServiceAreaResponse.model_validate(a) for a in created],
        skipped=skipped,
    )


@service_areas_router.put(
    "/{area_id}", response_model=ServiceAreaResponse, summary="Update a service area"
)
async def update_service_area(
    request: Request,
    business_id: str,
    area_id: str,
    data: ServiceAreaUpdate,
    session: AsyncSession = Depends(get_session),
) -> ServiceAreaResponse:
    logger.debug(
        "Update service area request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "area_id": area_id,
        },
    )

    service = ServiceAreaService(session)
    area = await service.update_service_area(business_id, area_id, data)
    return ServiceAreaResponse.model_validate(area)


@service_areas_router.delete(
    "/{area_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a service area",
)
async def delete_service_area(
    request: Request,
    business_id: str,
    area_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    logger.debug(
        "Delete service area request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "area_id": area_id,
        },
    )

    service = ServiceAreaService(session)
    await service.delete_service_area(business_id, area_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
