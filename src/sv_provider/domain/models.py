"""Domain models for sv_provider — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.sv_common.enums import HealthStatus


@dataclass
class Provider:
    id: str
    name: str                        # adapter key, e.g. "sms-man"
    display_name: str
    api_url: str
    is_active: bool = True
    priority: int = 0
    health_status: HealthStatus = HealthStatus.HEALTHY
    rate_limit: int | None = None    # requests/minute advertised by the vendor
    last_health_check_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_selectable(self) -> bool:
        return self.is_active and self.health_status != HealthStatus.DOWN


@dataclass(frozen=True)
class NumberReservation:
    external_id: str
    phone_number: str
    cost: Decimal | None = None      # vendor-reported, informational only


@dataclass(frozen=True)
class SmsResult:
    code: str
    message: str | None = None
    state: str = "RECEIVED"


@dataclass(frozen=True)
class ServiceOffer:
    """One service/country pair a vendor sells right now."""

    provider: str
    service_code: str
    country: str
    base_cost: Decimal | None = None  # None: the vendor prices only per request
    stock: int | None = None
