"""Polling worker: claim, generate, complete until the job is done.

The worker only talks to the API over HTTP, so any number of workers on any
number of hosts can drain the same job. When nothing is claimable the worker
backs off exponentially, starting at worker_poll_interval_seconds and
capped at worker_max_backoff_seconds, and resets after a successful claim.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from pagegen.core.config import get_settings
from pagegen.core.logging import generation_logger, get_logger
from pagegen.models.generation_job import TERMINAL_JOB_STATUSES
from pagegen.services.content_generation import (
    ContentGenerator,
    GenerationContext,
    GenerationError,
)
from pagegen.worker.api_client import WorkerApiClient, WorkerApiError

logger = get_logger(__name__)


@dataclass
class WorkerStats:
    """Counts for one worker run."""

    claimed: int = 0
    completed: int = 0
    failed: int = 0
    errors: int = 0


def build_context(claim: dict[str, Any], page_type: str) -> GenerationContext:
    """Turn a claim response into a generation context."""
    questionnaire = claim.get("questionnaire") or {}
    return GenerationContext(
        page=claim["page"],
        business=claim["business"],
        page_type=page_type,
        questionnaire=questionnaire.get("data") or {},
        template=claim.get("template"),
    )


class PageWorker:
    """Drains one job through the claim/complete API."""

    def __init__(
        self,
        api_client: WorkerApiClient,
        generator: ContentGenerator,
        worker_id: str,
        poll_interval: float | None = None,
        max_backoff: float | None = None,
    ) -> None:
        settings = get_settings()
        self._api = api_client
        self._generator = generator
        self._worker_id = worker_id
        self._poll_interval = (
            poll_interval if poll_interval is not None else settings.worker_poll_interval_seconds
        )
        self._max_backoff = (
            max_backoff if max_backoff is not None else settings.worker_max_backoff_seconds
        )
        self._stop_event = asyncio.Event()
        self.stats = WorkerStats()

    @property
    def worker_id(self) -> str:
        return self._worker_id

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the worker to stop after the current page."""
        if not self._stop_event.is_set():
            generation_logger.worker_event("stop_requested", worker_id=self._worker_id)
        self._stop_event.set()

    async def _sleep(self, seconds: float) -> None:
        """Sleep, waking early if stop() is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass

    def _next_backoff(self, current: float) -> float:
        return min(current * 2, self._max_backoff)

    async def _job_is_terminal(self, job_id: str) -> bool:
        job = await self._api.get_job(job_id)
        return job.get("status") in TERMINAL_JOB_STATUSES

    async def run(self, job_id: str) -> WorkerStats:
        """Process pages of a job until it is terminal or the worker stops."""
        job = await self._api.get_job(job_id)
        page_type = str(job["page_type"])
        generation_logger.worker_event(
            "started", worker_id=self._worker_id, job_id=job_id, page_type=page_type
        )

        backoff = self._poll_interval
        while not self.stopping:
            try:
                claim = await self._api.claim_page(job_id, self._worker_id)
            except WorkerApiError as e:
                self.stats.errors += 1
                logger.warning(
                    "Claim failed, backing off",
                    extra={"job_id": job_id, "error": str(e), "backoff_seconds": backoff},
                )
                await self._sleep(backoff)
                backoff = self._next_backoff(backoff)
                continue

            if claim is None:
                try:
                    terminal = await self._job_is_terminal(job_id)
                except WorkerApiError as e:
                    self.stats.errors += 1
                    logger.warning(
                        "Job status check failed, backing off",
                        extra={"job_id": job_id, "error": str(e), "backoff_seconds": backoff},
                    )
                    await self._sleep(backoff)
                    backoff = self._next_backoff(backoff)
                    continue
                if terminal:
                    generation_logger.worker_event(
                        "job_terminal", worker_id=self._worker_id, job_id=job_id
                    )
                    break
                logger.debug(
                    "No pages to claim, backing off",
                    extra={"job_id": job_id, "backoff_seconds": backoff},
                )
                await self._sleep(backoff)
                backoff = self._next_backoff(backoff)
                continue

            backoff = self._poll_interval
            self.stats.claimed += 1
            await self.process_page(job_id, page_type, claim)

        generation_logger.worker_event(
            "stopped",
            worker_id=self._worker_id,
            job_id=job_id,
            claimed=self.stats.claimed,
            completed=self.stats.completed,
            failed=self.stats.failed,
        )
        return self.stats

    async def process_page(
        self, job_id: str, page_type: str, claim: dict[str, Any]
    ) -> None:
        """Generate one claimed page and report the outcome."""
        page_id = str(claim["page"]["id"])
        context = build_context(claim, page_type)

        try:
            generated = await self._generator.generate(context)
            payload: dict[str, Any] = {
                "status": "completed",
                "content": generated.content,
                "section_count": generated.section_count,
                "word_count": generated.word_count,
                "model_name": generated.model_name,
                "prompt_version": generated.prompt_version,
                "generation_duration_ms": generated.generation_duration_ms,
                "input_tokens": generated.input_tokens,
                "output_tokens": generated.output_tokens,
            }
        except GenerationError as e:
            logger.warning(
                "Page generation failed",
                extra={"job_id": job_id, "page_id": page_id, "error": str(e)},
            )
            payload = {"status": "failed", "error_message": str(e)}

        try:
            await self._api.complete_page(job_id, page_id, payload)
        except WorkerApiError as e:
            # The claim goes stale and the sweep re-queues the page
            self.stats.errors += 1
            logger.error(
                "Failed to report page outcome",
                extra={
                    "job_id": job_id,
                    "page_id": page_id,
                    "status_code": e.status_code,
                    "error": str(e),
                },
            )
            return

        if payload["status"] == "completed":
            self.stats.completed += 1
        else:
            self.stats.failed += 1
