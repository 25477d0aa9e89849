"""Pydantic schemas for price quotes and pricing rule administration."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from src.sv_common.enums import ProfitType
from src.sv_pricing.domain.models import PricingRule


class QuoteResponse(BaseModel):
    service_code: str
    country: str
    provider: str
    base_cost: Decimal
    profit: Decimal
    final_price: Decimal
    currency: str
    price_display: str
    rule_applied: str | None


class ServiceCatalogItem(BaseModel):
    service_code: str
    country: str
    providers: list[str]              # priority order; the first one set the price
    stock: int | None = None
    base_cost: Decimal | None = None
    final_price: Decimal | None = None  # None: priced when quoted or ordered
    price_display: str | None = None
    rule_applied: str | None = None


class ServiceCatalogResponse(BaseModel):
    items: list[ServiceCatalogItem]
    currency: str


class PricingRuleCreateRequest(BaseModel):
    service_code: str | None = Field(None, max_length=64, description="None = any service")
    country: str | None = Field(
        None, min_length=2, max_length=2, description="ISO code; None = any country"
    )
    profit_type: ProfitType
    profit_value: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    priority: int = Field(0, ge=0, le=1000)
    is_active: bool = True

    @field_validator("country")
    @classmethod
    def normalize_country(cls, value: str | None) -> str | None:
        return value.strip().upper() if value else None

    @field_validator("service_code")
    @classmethod
    def normalize_service(cls, value: str | None) -> str | None:
        return value.strip().lower() if value else None


class PricingRuleUpdateRequest(BaseModel):
    profit_type: ProfitType | None = None
    profit_value: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    priority: int | None = Field(None, ge=0, le=1000)
    is_active: bool | None = None


class PricingRuleItem(BaseModel):
    id: str
    service_code: str | None
    country: str | None
    profit_type: ProfitType
    profit_value: Decimal
    priority: int
    is_active: bool
    created_at: str | None

    @classmethod
    def from_domain(cls, rule: PricingRule) -> "PricingRuleItem":
        return cls(
            id=rule.id,
            service_code=rule.service_code,
            country=rule.country,
            profit_type=rule.profit_type,
            profit_value=rule.profit_value,
            priority=rule.priority,
            is_active=rule.is_active,
            created_at=rule.created_at.isoformat() if rule.created_at else None,
        )
