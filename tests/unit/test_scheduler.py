"""BackgroundJobs: job registration and crash isolation."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from src.sv_jobs.scheduler import EXPIRY_SWEEP_JOB_ID, HEALTH_CHECK_JOB_ID, BackgroundJobs
from src.sv_order.application.schemas import ExpirySweepResponse


def _jobs(
    orchestrator: MagicMock | None = None, monitor: MagicMock | None = None
) -> tuple[BackgroundJobs, list[object]]:
    sessions: list[object] = []

    @asynccontextmanager
    async def session_factory() -> AsyncIterator[object]:
        db = object()
        sessions.append(db)
        yield db

    jobs = BackgroundJobs(
        orchestrator or MagicMock(),
        monitor or MagicMock(),
        session_factory,  # type: ignore[arg-type]
        sweep_interval_seconds=30,
        sweep_batch_size=50,
        health_interval_seconds=120,
    )
    return jobs, sessions


class TestSetup:
    def test_registers_both_jobs(self) -> None:
        jobs, _ = _jobs()
        jobs.setup_jobs()
        ids = {job.id for job in jobs.scheduler.get_jobs()}
        assert ids == {EXPIRY_SWEEP_JOB_ID, HEALTH_CHECK_JOB_ID}

    def test_setup_twice_replaces(self) -> None:
        jobs, _ = _jobs()
        jobs.setup_jobs()
        jobs.setup_jobs()
        assert len(jobs.scheduler.get_jobs()) == 2

    def test_shutdown_before_start_is_safe(self) -> None:
        jobs, _ = _jobs()
        jobs.shutdown()


class TestRunners:
    async def test_sweep_uses_fresh_session_and_batch_size(self) -> None:
        orchestrator = MagicMock()
        orchestrator.expire_overdue_orders = AsyncMock(
            return_value=ExpirySweepResponse(examined=2, expired=2, failed=0)
        )
        jobs, sessions = _jobs(orchestrator=orchestrator)

        result = await jobs.run_expiry_sweep()

        assert result == ExpirySweepResponse(examined=2, expired=2, failed=0)
        orchestrator.expire_overdue_orders.assert_awaited_once_with(sessions[0], 50)

    async def test_sweep_crash_is_contained(self) -> None:
        orchestrator = MagicMock()
        orchestrator.expire_overdue_orders = AsyncMock(side_effect=RuntimeError("db down"))
        jobs, _ = _jobs(orchestrator=orchestrator)

        assert await jobs.run_expiry_sweep() is None

    async def test_health_check(self) -> None:
        monitor = MagicMock()
        monitor.check_all = AsyncMock(return_value={})
        jobs, sessions = _jobs(monitor=monitor)

        await jobs.run_health_check()

        monitor.check_all.assert_awaited_once_with(sessions[0])

    async def test_health_check_crash_is_contained(self) -> None:
        monitor = MagicMock()
        monitor.check_all = AsyncMock(side_effect=RuntimeError("boom"))
        jobs, _ = _jobs(monitor=monitor)

        await jobs.run_health_check()
