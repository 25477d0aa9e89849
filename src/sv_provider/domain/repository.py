"""Repository Protocol for provider rows."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import HealthStatus
from src.sv_provider.domain.models import Provider


class ProviderRepositoryProtocol(Protocol):
    async def list_providers(
        self, db: AsyncSession, active_only: bool = False
    ) -> list[Provider]: ...

    async def update_health(
        self,
        db: AsyncSession,
        provider_id: str,
        health_status: HealthStatus,
        checked_at: datetime,
    ) -> None: ...

    async def update_provider(
        self,
        db: AsyncSession,
        provider_id: str,
        is_active: bool | None,
        priority: int | None,
        health_status: HealthStatus | None,
    ) -> Provider | None: ...
