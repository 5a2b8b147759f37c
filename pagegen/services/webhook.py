"""Webhook subscriptions and job event dispatch.

The active webhook list is read on every job finalization, so it is cached
in Redis for a short TTL and invalidated whenever a webhook is created or
deleted. Without Redis every read goes to the database.

Dispatch is fire-and-forget: each target gets one POST, all targets are
called concurrently, and delivery failures are logged but never raised.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.config import get_settings
from pagegen.core.exceptions import NotFoundError
from pagegen.core.logging import generation_logger, get_logger
from pagegen.core.redis import RedisManager, redis_manager
from pagegen.integrations.webhook import WebhookClient, get_webhook_client
from pagegen.models.generation_job import GenerationJob, JobStatus
from pagegen.models.webhook import Webhook, WebhookEvent
from pagegen.schemas.job import JobResponse
from pagegen.schemas.webhook import WebhookCreate

logger = get_logger(__name__)

ACTIVE_WEBHOOKS_CACHE_KEY = "pagegen:webhooks:active"


def event_for_job(job: GenerationJob) -> str:
    """job.failed for failed jobs, job.completed otherwise."""
    if job.status == JobStatus.FAILED.value:
        return WebhookEvent.JOB_FAILED.value
    return WebhookEvent.JOB_COMPLETED.value


def subscribes_to(events: list[str] | None, event: str) -> bool:
    """A null event list subscribes to everything."""
    return events is None or event in events


def build_job_payload(job: GenerationJob, event: str) -> dict[str, Any]:
    return {
        "event": event,
        "payload": {
            "job": JobResponse.model_validate(job).model_dump(mode="json"),
            "business_id": job.business_id,
            "job_id": job.id,
            "request_id": job.request_id,
        },
        "sent_at": datetime.now(UTC).isoformat(),
    }


class WebhookService:
    """Service class for Webhook operations and dispatch."""

    def __init__(
        self,
        session: AsyncSession,
        redis: RedisManager | None = None,
        client: WebhookClient | None = None,
    ) -> None:
        self.session = session
        self._redis = redis or redis_manager
        self._client = client

    async def _invalidate_cache(self) -> None:
        await self._redis.delete(ACTIVE_WEBHOOKS_CACHE_KEY)

    async def list_webhooks(self) -> list[Webhook]:
        result = await self.session.execute(
            select(Webhook).order_by(Webhook.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_webhook(self, data: WebhookCreate) -> Webhook:
        webhook = Webhook(url=data.url, events=data.events, is_active=data.is_active)
        self.session.add(webhook)
        await self.session.flush()
        await self.session.refresh(webhook)
        await self._invalidate_cache()

        logger.info(
            "Webhook created",
            extra={"webhook_id": webhook.id, "events": webhook.events},
        )
        return webhook

    async def delete_webhook(self, webhook_id: str) -> None:
        webhook = await self.session.get(Webhook, webhook_id)
        if webhook is None:
            raise NotFoundError("Webhook", webhook_id)
        await self.session.delete(webhook)
        await self.session.flush()
        await self._invalidate_cache()
        logger.info("Webhook deleted", extra={"webhook_id": webhook_id})

    async def get_active_webhooks(self) -> list[dict[str, Any]]:
        """Active webhooks as {id, url, events}, served from Redis when cached."""
        cached = await self._redis.get_json(ACTIVE_WEBHOOKS_CACHE_KEY)
        if isinstance(cached, list):
            return cached

        result = await self.session.execute(
            select(Webhook).where(Webhook.is_active.is_(True))
        )
        webhooks = [
            {"id": w.id, "url": w.url, "events": w.events}
            for w in result.scalars().all()
        ]

        await self._redis.set_json(
            ACTIVE_WEBHOOKS_CACHE_KEY,
            webhooks,
            ttl_seconds=get_settings().webhook_cache_ttl_seconds,
        )
        return webhooks

    async def dispatch_job_event(self, job: GenerationJob) -> tuple[int, int]:
        """POST the job's terminal event to every subscribed webhook.

        Returns:
            Tuple of (delivered, failed) counts
        """
        event = event_for_job(job)
        targets = [
            w for w in await self.get_active_webhooks() if subscribes_to(w.get("events"), event)
        ]
        if not targets:
            logger.debug(
                "No webhooks subscribed to event",
                extra={"job_id": job.id, "event": event},
            )
            return 0, 0

        client = self._client or get_webhook_client()
        payload = build_job_payload(job, event)
        results = await asyncio.gather(
            *(client.send(target["url"], payload) for target in targets)
        )

        delivered = sum(1 for r in results if r.success)
        failed = len(results) - delivered
        for r in results:
            if not r.success:
                logger.warning(
                    "Webhook delivery failed",
                    extra={
                        "job_id": job.id,
                        "url": r.url[:100],
                        "status_code": r.status_code,
                        "error": r.error,
                    },
                )

        generation_logger.webhook_dispatch(job.id, event, delivered, failed)
        return delivered, failed
