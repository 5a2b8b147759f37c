"""Tests for the APScheduler manager and the stale-claim sweep job."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.config import get_settings
from pagegen.core.database import DatabaseManager
from pagegen.core.scheduler import SchedulerManager, SchedulerState
from pagegen.models.business import Business
from pagegen.models.generation_job import JobPage
from pagegen.services.job_fanout import JobFanoutService
from pagegen.services.job_pages import JobPageService, release_stale_claims_job


async def noop() -> None:
    pass


@pytest.fixture
def scheduler_enabled(test_settings: None, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCHEDULER_ENABLED", "true")
    get_settings.cache_clear()


class TestSchedulerManager:
    def test_disabled_scheduler_does_not_initialize(self) -> None:
        manager = SchedulerManager()

        assert manager.init_scheduler() is False
        assert manager.check_health() == {
            "status": "not_initialized",
            "running": False,
            "state": "stopped",
            "job_count": 0,
        }

    def test_add_job_without_scheduler(self) -> None:
        assert SchedulerManager().add_interval_job(noop, "sweep", seconds=60) is None

    @pytest.mark.usefixtures("scheduler_enabled")
    async def test_start_add_job_and_stop(self) -> None:
        manager = SchedulerManager()

        assert manager.start() is True
        job_id = manager.add_interval_job(noop, "sweep", seconds=60, name="Sweep")

        assert job_id == "sweep"
        assert [job.name for job in manager.get_jobs()] == ["Sweep"]
        health = manager.check_health()
        assert health["status"] == "ok"
        assert health["job_count"] == 1

        manager.stop(wait=False)

        assert manager.state == SchedulerState.STOPPED
        assert manager.get_jobs() == []

    @pytest.mark.usefixtures("scheduler_enabled")
    async def test_adding_same_id_replaces_job(self) -> None:
        manager = SchedulerManager()
        manager.start()

        manager.add_interval_job(noop, "sweep", seconds=60)
        manager.add_interval_job(noop, "sweep", seconds=30)

        assert len(manager.get_jobs()) == 1
        manager.stop(wait=False)


class TestStaleClaimSweep:
    async def test_sweep_releases_stale_claims_across_jobs(
        self,
        db_session: AsyncSession,
        business: Business,
        mock_db_manager: DatabaseManager,
    ) -> None:
        job, _ = await JobFanoutService(db_session).create_job(
            business.id, "keyword-service-area"
        )
        claimed = await JobPageService(db_session).claim(job.id, "w1")
        await db_session.execute(
            update(JobPage)
            .where(JobPage.id == claimed["page"].id)
            .values(claimed_at=datetime.now(UTC) - timedelta(hours=1))
        )
        await db_session.commit()

        released = await release_stale_claims_job()

        assert released == 1
