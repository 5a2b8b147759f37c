"""Periodic maintenance jobs on an in-process AsyncIOScheduler.

The API process owns one scheduler running on its event loop with an
in-memory job store. Today it carries a single job, the stale-claim sweep,
which hands pages back to the queue when their worker has gone quiet.
Scheduler events are forwarded to scheduler_logger; executions slower than
SLOW_JOB_THRESHOLD_MS are also logged at WARNING.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    EVENT_JOB_SUBMITTED,
    EVENT_SCHEDULER_SHUTDOWN,
    EVENT_SCHEDULER_STARTED,
    JobEvent,
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pagegen.core.config import get_settings
from pagegen.core.logging import get_logger, scheduler_logger

logger = get_logger(__name__)

SLOW_JOB_THRESHOLD_MS = 1000

_LIFECYCLE_EVENTS = EVENT_SCHEDULER_STARTED | EVENT_SCHEDULER_SHUTDOWN
_JOB_EVENTS = EVENT_JOB_SUBMITTED | EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED


class SchedulerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


@dataclass
class JobInfo:
    """Snapshot of one registered job."""

    id: str
    name: str | None
    trigger: str
    next_run_time: datetime | None


class SchedulerManager:
    """Creates, starts and stops the maintenance scheduler."""

    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None
        self._state = SchedulerState.STOPPED
        self._submitted_at: dict[str, float] = {}

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    def _on_lifecycle(self, event: Any) -> None:
        if event.code == EVENT_SCHEDULER_STARTED and self._scheduler is not None:
            scheduler_logger.scheduler_start(len(self._scheduler.get_jobs()))
        elif event.code == EVENT_SCHEDULER_SHUTDOWN:
            scheduler_logger.scheduler_stop(graceful=True)

    def _on_job(self, event: JobEvent) -> None:
        if event.code == EVENT_JOB_SUBMITTED:
            self._submitted_at[event.job_id] = time.monotonic()
            return

        submitted = self._submitted_at.pop(event.job_id, None)
        elapsed_ms = (time.monotonic() - submitted) * 1000 if submitted else 0.0

        if event.code == EVENT_JOB_MISSED:
            run_time = getattr(event, "scheduled_run_time", None)
            scheduler_logger.job_missed(
                event.job_id, run_time.isoformat() if run_time else "unknown"
            )
        elif event.code == EVENT_JOB_ERROR:
            exc = getattr(event, "exception", None)
            scheduler_logger.job_execution_error(
                event.job_id, str(exc), type(exc).__name__
            )
        else:
            scheduler_logger.job_execution_success(
                event.job_id, elapsed_ms, result=getattr(event, "retval", None)
            )
            if elapsed_ms > SLOW_JOB_THRESHOLD_MS:
                logger.warning(
                    "Slow scheduled job",
                    extra={
                        "job_id": event.job_id,
                        "duration_ms": round(elapsed_ms, 2),
                        "threshold_ms": SLOW_JOB_THRESHOLD_MS,
                    },
                )

    def init_scheduler(self) -> bool:
        """Build the scheduler unless SCHEDULER_ENABLED is off."""
        settings = get_settings()
        if not settings.scheduler_enabled:
            logger.info("Scheduler disabled by SCHEDULER_ENABLED")
            return False
        if self._scheduler is not None:
            return True

        scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": settings.scheduler_misfire_grace_time,
            },
        )
        scheduler.add_listener(self._on_lifecycle, _LIFECYCLE_EVENTS)
        scheduler.add_listener(self._on_job, _JOB_EVENTS)
        self._scheduler = scheduler
        return True

    def start(self) -> bool:
        """Start on the running event loop. Returns False when disabled."""
        if not self.init_scheduler() or self._scheduler is None:
            return False
        if not self.is_running:
            self._scheduler.start()
            self._state = SchedulerState.RUNNING
        return True

    def stop(self, wait: bool = True) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None and self.is_running:
            self._state = SchedulerState.SHUTTING_DOWN
            scheduler.shutdown(wait=wait)
        self._state = SchedulerState.STOPPED
        self._submitted_at.clear()

    def add_interval_job(
        self,
        func: Callable[..., Any],
        job_id: str,
        seconds: int,
        name: str | None = None,
    ) -> str | None:
        """Schedule func every `seconds`; an existing job with job_id is replaced."""
        if self._scheduler is None:
            scheduler_logger.scheduler_not_available(
                "add_interval_job", "Scheduler is not initialized"
            )
            return None

        job = self._scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=name or job_id,
            replace_existing=True,
        )
        logger.info(
            "Scheduled interval job",
            extra={"job_id": job.id, "job_name": job.name, "interval_seconds": seconds},
        )
        return str(job.id)

    def get_jobs(self) -> list[JobInfo]:
        if self._scheduler is None:
            return []
        return [
            JobInfo(
                id=job.id,
                name=job.name,
                trigger=str(job.trigger),
                next_run_time=getattr(job, "next_run_time", None),
            )
            for job in self._scheduler.get_jobs()
        ]

    def check_health(self) -> dict[str, Any]:
        if self._scheduler is None:
            status = "not_initialized"
        else:
            status = "ok" if self.is_running else "degraded"
        return {
            "status": status,
            "running": self.is_running,
            "state": self._state.value,
            "job_count": len(self.get_jobs()),
        }


scheduler_manager = SchedulerManager()
