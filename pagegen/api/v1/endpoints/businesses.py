"""Businesses API endpoints.

Provides CRUD operations for businesses and their questionnaire:
- GET /api/v1/businesses - List businesses with pagination
- POST /api/v1/businesses - Create a business (and its empty questionnaire)
- GET /api/v1/businesses/{business_id} - Get a business by ID
- PUT /api/v1/businesses/{business_id} - Update a business
- DELETE /api/v1/businesses/{business_id} - Delete a business and everything it owns
- GET /api/v1/businesses/{business_id}/questionnaire - Get the questionnaire
- PUT /api/v1/businesses/{business_id}/questionnaire - Replace the questionnaire
- GET /api/v1/businesses/{business_id}/hours - Get opening hours, Monday first
- PUT /api/v1/businesses/{business_id}/hours - Upsert opening hours per weekday
- GET /api/v1/businesses/{business_id}/social - List social links
- POST /api/v1/businesses/{business_id}/social - Add or replace a platform link
- DELETE /api/v1/businesses/{business_id}/social/{platform} - Remove a platform link

Domain errors (not found, validation) are raised by the service and rendered
by the application's PagegenError handler as
{"error": str, "code": str, "request_id": str}.
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.api.v1.deps import get_request_id
from pagegen.core.database import get_session
from pagegen.core.logging import get_logger
from pagegen.models.business_profile import SocialPlatform
from pagegen.schemas.business import (
    BusinessCreate,
    BusinessListResponse,
    BusinessResponse,
    BusinessUpdate,
    QuestionnaireResponse,
    QuestionnaireUpdate,
)
from pagegen.schemas.business_profile import (
    BusinessHoursListResponse,
    BusinessHoursResponse,
    BusinessHoursUpdate,
    SocialLinkCreate,
    SocialLinkEnvelope,
    SocialLinkListResponse,
    SocialLinkResponse,
)
from pagegen.services.business import BusinessService
from pagegen.services.business_profile import BusinessProfileService

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=BusinessListResponse,
    summary="List businesses",
    description="Retrieve a paginated list of businesses ordered by name.",
)
async def list_businesses(
    request: Request,
    limit: int = Query(default=100, ge=1, le=1000, description="Number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    session: AsyncSession = Depends(get_session),
) -> BusinessListResponse:
    """List businesses with pagination."""
    logger.debug(
        "List businesses request",
        extra={"request_id": get_request_id(request), "limit": limit, "offset": offset},
    )

    service = BusinessService(session)
    businesses, total = await service.list_businesses(limit=limit, offset=offset)

    return BusinessListResponse(
        items=[BusinessResponse.model_validate(b) for b in businesses],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "",
    response_model=BusinessResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a business",
)
async def create_business(
    request: Request,
    data: BusinessCreate,
    session: AsyncSession = Depends(get_session),
) -> BusinessResponse:
    logger.debug(
        "Create business request",
        extra={
            "request_id": get_request_id(request),
            "business_name": data.name,
            "industry": data.industry,
        },
    )

    service = BusinessService(session)
    business = await service.create_business(data)
    return BusinessResponse.model_validate(business)


@router.get(
    "/{business_id}",
    response_model=BusinessResponse,
    summary="Get a business",
    responses={
        404: {
            "description": "Business not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": "Business not found: <uuid>",
                        "code": "NOT_FOUND",
                        "request_id": "<request_id>",
                    }
                }
            },
        }
    },
)
async def get_business(
    request: Request,
    business_id: str,
    session: AsyncSession = Depends(get_session),
) -> BusinessResponse:
    logger.debug(
        "Get business request",
        extra={"request_id": get_request_id(request), "business_id": business_id},
    )

    service = BusinessService(session)
    business = await service.get_business(business_id)
    return BusinessResponse.model_validate(business)


@router.put(
    "/{business_id}",
    response_model=BusinessResponse,
    summary="Update a business",
    description="Update only the provided fields of a business.",
)
async def update_business(
    request: Request,
    business_id: str,
    data: BusinessUpdate,
    session: AsyncSession = Depends(get_session),
) -> BusinessResponse:
    logger.debug(
        "Update business request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "update_fields": sorted(data.model_dump(exclude_unset=True)),
        },
    )

    service = BusinessService(session)
    business = await service.update_business(business_id, data)
    return BusinessResponse.model_validate(business)


@router.delete(
    "/{business_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a business",
    description="Delete a business with its keywords, areas, locations, templates and jobs.",
)
async def delete_business(
    request: Request,
    business_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    logger.debug(
        "Delete business request",
        extra={"request_id": get_request_id(request), "business_id": business_id},
    )

    service = BusinessService(session)
    await service.delete_business(business_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{business_id}/questionnaire",
    response_model=QuestionnaireResponse,
    summary="Get the business questionnaire",
)
async def get_questionnaire(
    request: Request,
    business_id: str,
    session: AsyncSession = Depends(get_session),
) -> QuestionnaireResponse:
    logger.debug(
        "Get questionnaire request",
        extra={"request_id": get_request_id(request), "business_id": business_id},
    )

    service = BusinessService(session)
    questionnaire = await service.get_questionnaire(business_id)
    return QuestionnaireResponse.model_validate(questionnaire)


@router.put(
    "/{business_id}/questionnaire",
    response_model=QuestionnaireResponse,
    summary="Replace the business questionnaire",
    description="Replace the questionnaire data and recompute its completeness score.",
)
async def save_questionnaire(
    request: Request,
    business_id: str,
    data: QuestionnaireUpdate,
    session: AsyncSession = Depends(get_session),
) -> QuestionnaireResponse:
    logger.debug(
        "Save questionnaire request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "sections": sorted(data.data),
        },
    )

    service = BusinessService(session)
    questionnaire = await service.save_questionnaire(business_id, data.data)
    return QuestionnaireResponse.model_validate(questionnaire)


@router.get(
    "/{business_id}/hours",
    response_model=BusinessHoursListResponse,
    summary="Get business hours",
)
async def get_hours(
    request: Request,
    business_id: str,
    session: AsyncSession = Depends(get_session),
) -> BusinessHoursListResponse:
    logger.debug(
        "Get hours request",
        extra={"request_id": get_request_id(request), "business_id": business_id},
    )

    service = BusinessProfileService(session)
    hours = await service.list_hours(business_id)
    return BusinessHoursListResponse(
        hours=[BusinessHoursResponse.model_validate(h) for h in hours]
    )


@router.put(
    "/{business_id}/hours",
    response_model=BusinessHoursListResponse,
    summary="Set business hours",
    description="Upsert the listed weekdays and return the whole week.",
)
async def save_hours(
    request: Request,
    business_id: str,
    data: BusinessHoursUpdate,
    session: AsyncSession = Depends(get_session),
) -> BusinessHoursListResponse:
    logger.debug(
        "Save hours request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "day_count": len(data.hours),
        },
    )

    service = BusinessProfileService(session)
    hours = await service.save_hours(business_id, data.hours)
    return BusinessHoursListResponse(
        hours=[BusinessHoursResponse.model_validate(h) for h in hours]
    )


@router.get(
    "/{business_id}/social",
    response_model=SocialLinkListResponse,
    summary="List social links",
)
async def list_social_links(
    request: Request,
    business_id: str,
    session: AsyncSession = Depends(get_session),
) -> SocialLinkListResponse:
    logger.debug(
        "List social links request",
        extra={"request_id": get_request_id(request), "business_id": business_id},
    )

    service = BusinessProfileService(session)
    links = await service.list_social_links(business_id)
    return SocialLinkListResponse(
        links=[SocialLinkResponse.model_validate(link) for link in links]
    )


@router.post(
    "/{business_id}/social",
    response_model=SocialLinkEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Add or replace a social link",
)
async def save_social_link(
    request: Request,
    business_id: str,
    data: SocialLinkCreate,
    session: AsyncSession = Depends(get_session),
) -> SocialLinkEnvelope:
    logger.debug(
        "Save social link request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "platform": data.platform.value,
        },
    )

    service = BusinessProfileService(session)
    link = await service.save_social_link(business_id, data)
    return SocialLinkEnvelope(link=SocialLinkResponse.model_validate(link))


@router.delete(
    "/{business_id}/social/{platform}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a social link",
)
async def delete_social_link(
    request: Request,
    business_id: str,
    platform: SocialPlatform,
    session: AsyncSession = Depends(get_session),
) -> Response:
    logger.debug(
        "Delete social link request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "platform": platform.value,
        },
    )

    service = BusinessProfileService(session)
    await service.delete_social_link(business_id, platform)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
