"""Background jobs: expiry sweep and provider health checks.

Both run on an APScheduler AsyncIOScheduler inside the API process, each
with its own DB session, one instance at a time, missed runs coalesced.
"""

import logging
from collections.abc import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_order.application.orchestrator import OrderOrchestrator
from src.sv_order.application.schemas import ExpirySweepResponse
from src.sv_provider.application.health import ProviderHealthMonitor

logger = logging.getLogger(__name__)

EXPIRY_SWEEP_JOB_ID = "expire_overdue_orders"
HEALTH_CHECK_JOB_ID = "provider_health_check"


class BackgroundJobs:
    def __init__(
        self,
        orchestrator: OrderOrchestrator,
        health_monitor: ProviderHealthMonitor,
        session_factory: Callable[[], AsyncSession],
        sweep_interval_seconds: int = 60,
        sweep_batch_size: int = 100,
        health_interval_seconds: int = 300,
    ) -> None:
        self._orchestrator = orchestrator
        self._health_monitor = health_monitor
        self._session_factory = session_factory
        self._sweep_interval = sweep_interval_seconds
        self._sweep_batch_size = sweep_batch_size
        self._health_interval = health_interval_seconds
        self.scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
            timezone="UTC",
        )

    def setup_jobs(self) -> None:
        self.scheduler.add_job(
            self.run_expiry_sweep,
            trigger=IntervalTrigger(seconds=self._sweep_interval),
            id=EXPIRY_SWEEP_JOB_ID,
            name="Expire Overdue Orders",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_health_check,
            trigger=IntervalTrigger(seconds=self._health_interval),
            id=HEALTH_CHECK_JOB_ID,
            name="Provider Health Check",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    def start(self) -> None:
        self.setup_jobs()
        self.scheduler.start()
        logger.info(
            "Background jobs started: sweep every %ds, health check every %ds",
            self._sweep_interval, self._health_interval,
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    async def run_expiry_sweep(self) -> ExpirySweepResponse | None:
        # A job that raises would only be logged by APScheduler; log it here with context
        try:
            async with self._session_factory() as db:
                return await self._orchestrator.expire_overdue_orders(db, self._sweep_batch_size)
        except Exception:
            logger.exception("Expiry sweep crashed")
            return None

    async def run_health_check(self) -> None:
        try:
            async with self._session_factory() as db:
                await self._health_monitor.check_all(db)
        except Exception:
            logger.exception("Provider health check crashed")
