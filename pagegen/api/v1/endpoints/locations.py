"""Location API endpoints.

- GET /api/v1/businesses/{business_id}/locations - List (filter by status, state, country)
- POST /api/v1/businesses/{business_id}/locations - Create a location
- GET /api/v1/businesses/{business_id}/locations/stats - Counts by status, state, country
- POST /api/v1/businesses/{business_id}/locations/bulk - Import many, row by row
- GET /api/v1/businesses/{business_id}/locations/{location_id} - Get a location
- PUT /api/v1/businesses/{business_id}/locations/{location_id} - Update a location
- DELETE /api/v1/businesses/{business_id}/locations/{location_id} - Delete a location

Active locations own a service area: creating or activating one creates the
area (or links the existing one with the same slug). Deleting a location
unlinks its areas without deleting them.
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.api.v1.deps import get_request_id
from pagegen.core.database import get_session
from pagegen.core.logging import get_logger
from pagegen.schemas.location import (
    BulkImportError,
    LocationBulkImport,
    LocationBulkImportResponse,
    LocationCreate,
    LocationListResponse,
    LocationResponse,
    LocationStatsResponse,
    LocationUpdate,
)
from pagegen.services.location import LocationService

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=LocationListResponse, summary="List locations")
async def list_locations(
    request: Request,
    business_id: str,
    status_filter: str | None = Query(
        default=None, alias="status", description="Filter by status (active, upcoming)"
    ),
    state: str | None = Query(default=None, description="Filter by state"),
    country: str | None = Query(default=None, description="Filter by country code"),
    session: AsyncSession = Depends(get_session),
) -> LocationListResponse:
    logger.debug(
        "List locations request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "status": status_filter,
            "state": state,
            "country": country,
        },
    )

    service = LocationService(session)
    locations = await service.list_locations(
        business_id, status=status_filter, state=state, country=country
    )
    return LocationListResponse(
        items=[LocationResponse.model_validate(loc) for loc in locations],
        total=len(locations),
    )


@router.post(
    "",
    response_model=LocationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a location",
)
async def create_location(
    request: Request,
    business_id: str,
    data: LocationCreate,
    session: AsyncSession = Depends(get_session),
) -> LocationResponse:
    logger.debug(
        "Create location request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "city": data.city,
            "state": data.state,
            "status": data.status,
        },
    )

    service = LocationService(session)
    location = await service.create_location(business_id, data)
    return LocationResponse.model_validate(location)


@router.get(
    "/stats", response_model=LocationStatsResponse, summary="Location statistics"
)
async def get_location_stats(
    request: Request,
    business_id: str,
    session: AsyncSession = Depends(get_session),
) -> LocationStatsResponse:
    logger.debug(
        "Location stats request",
        extra={"request_id": get_request_id(request), "business_id": business_id},
    )

    service = LocationService(session)
    stats = await service.get_stats(business_id)
    return LocationStatsResponse(**stats)


@router.post(
    "/bulk",
    response_model=LocationBulkImportResponse,
    summary="Import many locations",
    description=(
        "Each row is validated and inserted on its own; failed rows are "
        "reported by index and do not affect the others."
    ),
)
async def bulk_import_locations(
    request: Request,
    business_id: str,
    data: LocationBulkImport,
    session: AsyncSession = Depends(get_session),
) -> LocationBulkImportResponse:
    logger.debug(
        "Bulk import locations request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "count": len(data.locations),
            "auto_create_service_areas": data.auto_create_service_areas,
        },
    )

    service = LocationService(session)
    created, errors = await service.bulk_import(
        business_id,
        data.locations,
        auto_create_service_areas=data.auto_create_service_areas,
    )
    return LocationBulkImportResponse(
        created=len(created),
        failed=len(errors),
        locations=[LocationResponse.model_validate(loc) for loc in created],
        errors=[BulkImportError(**e) for e in errors],
    )


@router.get(
    "/{location_id}", response_model=LocationResponse, summary="Get a location"
)
async def get_location(
    request: Request,
    business_id: str,
    location_id: str,
    session: AsyncSession = Depends(get_session),
) -> LocationResponse:
    logger.debug(
        "Get location request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "location_id": location_id,
        },
    )

    service = LocationService(session)
    location = await service.get_location(business_id, location_id)
    return LocationResponse.model_validate(location)


@router.put(
    "/{location_id}", response_model=LocationResponse, summary="Update a location"
)
async def update_location(
    request: Request,
    business_id: str,
    location_id: str,
    data: LocationUpdate,
    session: AsyncSession = Depends(get_session),
) -> LocationResponse:
    logger.debug(
        "Update location request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "location_id": location_id,
            "update_fields": sorted(data.model_dump(exclude_unset=True)),
        },
    )

    service = LocationService(session)
    location = await service.update_location(business_id, location_id, data)
    return LocationResponse.model_validate(location)


@router.delete(
    "/{location_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a location",
    description="Delete a location. Linked service areas are kept and unlinked.",
)
async def delete_location(
    request: Request,
    business_id: str,
    location_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    logger.debug(
        "Delete location request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "location_id": location_id,
        },
    )

    service = LocationService(session)
    await service.delete_location(business_id, location_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
