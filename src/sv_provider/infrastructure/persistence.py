"""ProviderRepository — concrete implementation of ProviderRepositoryProtocol."""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import HealthStatus
from src.sv_provider.domain.models import Provider

_PROVIDER_COLUMNS = """
    id, name, display_name, api_url, is_active, priority, health_status,
    rate_limit, last_health_check_at, created_at, updated_at
"""

_LIST_PROVIDERS_SQL = text(f"""
    SELECT {_PROVIDER_COLUMNS}
    FROM providers
    WHERE (:active_only = FALSE OR is_active = TRUE)
    ORDER BY priority DESC, name ASC
""")

_UPDATE_HEALTH_SQL = text("""
    UPDATE providers
    SET health_status = :health_status,
        last_health_check_at = :checked_at
    WHERE id = :id
""")

# COALESCE keeps a column unchanged when the PATCH body omits it
_UPDATE_PROVIDER_SQL = text(f"""
    UPDATE providers
    SET is_active = COALESCE(:is_active, is_active),
        priority = COALESCE(:priority, priority),
        health_status = COALESCE(:health_status, health_status)
    WHERE id = :id
    RETURNING {_PROVIDER_COLUMNS}
""")


def _row_to_provider(row: object) -> Provider:
    return Provider(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        display_name=row.display_name,  # type: ignore[attr-defined]
        api_url=row.api_url,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        priority=row.priority,  # type: ignore[attr-defined]
        health_status=HealthStatus(row.health_status),  # type: ignore[attr-defined]
        rate_limit=row.rate_limit,  # type: ignore[attr-defined]
        last_health_check_at=row.last_health_check_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class ProviderRepository:
    async def list_providers(
        self, db: AsyncSession, active_only: bool = False
    ) -> list[Provider]:
        result = await db.execute(_LIST_PROVIDERS_SQL, {"active_only": active_only})
        return [_row_to_provider(row) for row in result.fetchall()]

    async def update_health(
        self,
        db: AsyncSession,
        provider_id: str,
        health_status: HealthStatus,
        checked_at: datetime,
    ) -> None:
        await db.execute(
            _UPDATE_HEALTH_SQL,
            {
                "id": provider_id,
                "health_status": health_status.value,
                "checked_at": checked_at,
            },
        )

    async def update_provider(
        self,
        db: AsyncSession,
        provider_id: str,
        is_active: bool | None,
        priority: int | None,
        health_status: HealthStatus | None,
    ) -> Provider | None:
        result = await db.execute(
            _UPDATE_PROVIDER_SQL,
            {
                "id": provider_id,
                "is_active": is_active,
                "priority": priority,
                "health_status": health_status.value if health_status else None,
            },
        )
        row = result.fetchone()
        return _row_to_provider(row) if row else None
