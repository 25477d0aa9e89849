"""Domain models for sv_pricing — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.sv_common.enums import ProfitType


@dataclass
class PricingRule:
    id: str
    service_code: str | None       # None = any service
    country: str | None            # None = any country
    profit_type: ProfitType
    profit_value: Decimal          # percent for PERCENTAGE, money for FIXED
    priority: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class PriceRequest:
    base_cost: Decimal
    service_code: str
    country: str


@dataclass(frozen=True)
class PriceQuote:
    base_cost: Decimal
    profit: Decimal
    final_price: Decimal
    rule_applied: str | None       # None = default markup
