"""Webhook subscription API endpoints.

- GET /api/v1/webhooks - List webhooks
- POST /api/v1/webhooks - Register a webhook for job.completed / job.failed
- DELETE /api/v1/webhooks/{webhook_id} - Remove a webhook
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.api.v1.deps import get_request_id
from pagegen.core.database import get_session
from pagegen.core.logging import get_logger
from pagegen.schemas.webhook import WebhookCreate, WebhookListResponse, WebhookResponse
from pagegen.services.webhook import WebhookService

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=WebhookListResponse, summary="List webhooks")
async def list_webhooks(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> WebhookListResponse:
    logger.debug("List webhooks request", extra={"request_id": get_request_id(request)})

    service = WebhookService(session)
    webhooks = await service.list_webhooks()
    return WebhookListResponse(
        items=[WebhookResponse.model_validate(w) for w in webhooks],
        total=len(webhooks),
    )


@router.post(
    "",
    response_model=WebhookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a webhook",
)
async def create_webhook(
    request: Request,
    data: WebhookCreate,
    session: AsyncSession = Depends(get_session),
) -> WebhookResponse:
    logger.debug(
        "Create webhook request",
        extra={
            "request_id": get_request_id(request),
            "url": data.url[:100],
            "events": data.events,
        },
    )

    service = WebhookService(session)
    webhook = await service.create_webhook(data)
    return WebhookResponse.model_validate(webhook)


@router.delete(
    "/{webhook_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a webhook",
)
async def delete_webhook(
    request: Request,
    webhook_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    logger.debug(
        "Delete webhook request",
        extra={"request_id": get_request_id(request), "webhook_id": webhook_id},
    )

    service = WebhookService(session)
    await service.delete_webhook(webhook_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
