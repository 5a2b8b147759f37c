"""Prompt template API endpoints.

- GET /api/v1/businesses/{business_id}/prompts - List (filter by page_type)
- POST /api/v1/businesses/{business_id}/prompts - Create a template version
- GET /api/v1/businesses/{business_id}/prompts/active/{page_type} - Active template
- GET /api/v1/businesses/{business_id}/prompts/{template_id} - Get a template
- PUT /api/v1/businesses/{business_id}/prompts/{template_id} - Update a template
- DELETE /api/v1/businesses/{business_id}/prompts/{template_id} - Delete a template
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.api.v1.deps import get_request_id
from pagegen.core.database import get_session
from pagegen.core.logging import get_logger
from pagegen.schemas.prompt_template import (
    PromptTemplateCreate,
    PromptTemplateListResponse,
    PromptTemplateResponse,
    PromptTemplateUpdate,
)
from pagegen.services.prompt_template import PromptTemplateService

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "", response_model=PromptTemplateListResponse, summary="List prompt templates"
)
async def list_prompt_templates(
    request: Request,
    business_id: str,
    page_type: str | None = Query(default=None, description="Filter by page type"),
    session: AsyncSession = Depends(get_session),
) -> PromptTemplateListResponse:
    logger.debug(
        "List prompt templates request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "page_type": page_type,
        },
    )

    service = PromptTemplateService(session)
    templates = await service.list_templates(business_id, page_type=page_type)
    return PromptTemplateListResponse(
        items=[PromptTemplateResponse.model_validate(t) for t in templates],
        total=len(templates),
    )


@router.post(
    "",
    response_model=PromptTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a prompt template version",
)
async def create_prompt_template(
    request: Request,
    business_id: str,
    data: PromptTemplateCreate,
    session: AsyncSession = Depends(get_session),
) -> PromptTemplateResponse:
    logger.debug(
        "Create prompt template request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "page_type": data.page_type,
            "version": data.version,
        },
    )

    service = PromptTemplateService(session)
    template = await service.create_template(business_id, data)
    return PromptTemplateResponse.model_validate(template)


@router.get(
    "/active/{page_type}",
    response_model=PromptTemplateResponse,
    summary="Get the active template for a page type",
    description="Returns the highest active version. 404 when none is active.",
)
async def get_active_prompt_template(
    request: Request,
    business_id: str,
    page_type: str,
    session: AsyncSession = Depends(get_session),
) -> PromptTemplateResponse:
    logger.debug(
        "Get active prompt template request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "page_type": page_type,
        },
    )

    service = PromptTemplateService(session)
    template = await service.get_active(business_id, page_type)
    return PromptTemplateResponse.model_validate(template)


@router.get(
    "/{template_id}",
    response_model=PromptTemplateResponse,
    summary="Get a prompt template",
)
async def get_prompt_template(
    request: Request,
    business_id: str,
    template_id: str,
    session: AsyncSession = Depends(get_session),
) -> PromptTemplateResponse:
    logger.debug(
        "Get prompt template request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "template_id": template_id,
        },
    )

    service = PromptTemplateService(session)
    template = await service.get_template(business_id, template_id)
    return PromptTemplateResponse.model_validate(template)


@router.put(
    "/{template_id}",
    response_model=PromptTemplateResponse,
    summary="Update a prompt template",
)
async def update_prompt_template(
    request: Request,
    business_id: str,
    template_id: str,
    data: PromptTemplateUpdate,
    session: AsyncSession = Depends(get_session),
) -> PromptTemplateResponse:
    logger.debug(
        "Update prompt template request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "template_id": template_id,
        },
    )

    service = PromptTemplateService(session)
    template = await service.update_template(business_id, template_id, data)
    return PromptTemplateResponse.model_validate(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a prompt template",
)
async def delete_prompt_template(
    request: Request,
    business_id: str,
    template_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    logger.debug(
        "Delete prompt template request",
        extra={
            "request_id": get_request_id(request),
            "business_id": business_id,
            "template_id": template_id,
        },
    )

    service = PromptTemplateService(session)
    await service.delete_template(business_id, template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
