"""ProviderHealthMonitor — periodic liveness check of every registered vendor.

HEALTHY after a success; DEGRADED on the first failure; DOWN once
``down_after`` consecutive checks have failed. DOWN providers are skipped by
ProviderRegistry.select_provider until a check succeeds again.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.datetime_utils import utc_now
from src.sv_common.enums import HealthStatus, LogLevel
from src.sv_common.system_log import SystemLogRepository
from src.sv_provider.application.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class ProviderHealthMonitor:
    def __init__(
        self,
        registry: ProviderRegistry,
        down_after: int = 3,
        timeout: float = 10.0,
        log_repo: SystemLogRepository | None = None,
    ) -> None:
        self._registry = registry
        self._down_after = down_after
        self._timeout = timeout
        self._log_repo = log_repo or SystemLogRepository()
        self._failures: dict[str, int] = {}

    def _next_status(self, name: str, ok: bool) -> HealthStatus:
        if ok:
            self._failures[name] = 0
            return HealthStatus.HEALTHY
        self._failures[name] = self._failures.get(name, 0) + 1
        if self._failures[name] >= self._down_after:
            return HealthStatus.DOWN
        return HealthStatus.DEGRADED

    async def check_all(self, db: AsyncSession) -> dict[str, HealthStatus]:
        providers = await self._registry.repo.list_providers(db)
        results: dict[str, HealthStatus] = {}
        try:
            for provider in providers:
                adapter = self._registry.find(provider.name)
                if adapter is None:
                    continue
                error: str | None = None
                try:
                    await asyncio.wait_for(adapter.check_health(), self._timeout)
                except Exception as exc:  # any failure counts against the vendor
                    error = f"{type(exc).__name__}: {exc}"
                    logger.warning("Health check failed for %s: %s", provider.name, error)
                status = self._next_status(provider.name, error is None)
                results[provider.name] = status
                await self._registry.repo.update_health(db, provider.id, status, utc_now())
                if status != provider.health_status:
                    logger.info(
                        "Provider %s health %s → %s",
                        provider.name, provider.health_status.value, status.value,
                    )
                    await self._log_repo.write(
                        db,
                        LogLevel.WARN if status != HealthStatus.HEALTHY else LogLevel.INFO,
                        "provider-health",
                        f"Provider {provider.name} is {status.value}",
                        {
                            "provider_id": provider.id,
                            "previous": provider.health_status.value,
                            "consecutive_failures": self._failures.get(provider.name, 0),
                        },
                        error,
                    )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return results
