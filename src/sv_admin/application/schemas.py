"""Pydantic schemas for admin provider management."""

from pydantic import BaseModel, Field

from src.sv_common.enums import HealthStatus
from src.sv_provider.domain.models import Provider


class ProviderItem(BaseModel):
    id: str
    name: str
    display_name: str
    api_url: str
    is_active: bool
    priority: int
    health_status: HealthStatus
    rate_limit: int | None
    last_health_check_at: str | None
    has_adapter: bool

    @classmethod
    def from_domain(cls, provider: Provider, has_adapter: bool) -> "ProviderItem":
        checked = provider.last_health_check_at
        return cls(
            id=provider.id,
            name=provider.name,
            display_name=provider.display_name,
            api_url=provider.api_url,
            is_active=provider.is_active,
            priority=provider.priority,
            health_status=provider.health_status,
            rate_limit=provider.rate_limit,
            last_health_check_at=checked.isoformat() if checked else None,
            has_adapter=has_adapter,
        )


class ProviderUpdateRequest(BaseModel):
    is_active: bool | None = None
    priority: int | None = Field(None, ge=0, le=1000)
    health_status: HealthStatus | None = Field(
        None, description="Manual override, e.g. put a vendor back to HEALTHY"
    )
