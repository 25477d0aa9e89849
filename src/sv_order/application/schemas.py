"""Pydantic schemas for order endpoints and the cached status view."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from src.sv_common.enums import OrderStatus
from src.sv_order.domain.models import Order

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateOrderRequest(BaseModel):
    service_code: str = Field(..., min_length=1, max_length=64, description="e.g. 'wa', 'tg'")
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2")
    preferred_provider: str | None = Field(None, max_length=64)

    @field_validator("service_code")
    @classmethod
    def normalize_service(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("country")
    @classmethod
    def normalize_country(cls, value: str) -> str:
        return value.strip().upper()


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OrderStatusView(BaseModel):
    """What clients poll; also the Redis cache payload."""

    order_id: str
    order_number: str
    user_id: str
    status: OrderStatus
    provider: str
    service_code: str
    country: str
    phone_number: str | None = None
    sms_code: str | None = None
    sms_message: str | None = None
    final_price: Decimal
    currency: str
    expires_at: datetime
    created_at: datetime | None = None
    polled_at: datetime | None = None   # last provider poll, throttles polling

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def from_domain(cls, order: Order, polled_at: datetime | None = None) -> "OrderStatusView":
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            provider=order.provider_id,
            service_code=order.service_code,
            country=order.country,
            phone_number=order.phone_number,
            sms_code=order.sms_code,
            sms_message=order.sms_message,
            final_price=order.final_price,
            currency=order.currency,
            expires_at=order.expires_at,
            created_at=order.created_at,
            polled_at=polled_at,
        )


class OrderItem(BaseModel):
    id: str
    order_number: str
    status: str
    provider: str
    service_code: str
    country: str
    phone_number: str | None
    sms_code: str | None
    base_cost: Decimal
    profit: Decimal
    final_price: Decimal
    currency: str
    price_display: str
    cancel_reason: str | None
    expires_at: str
    created_at: str

    @classmethod
    def from_domain(cls, order: Order, price_display: str) -> "OrderItem":
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status.value,
            provider=order.provider_id,
            service_code=order.service_code,
            country=order.country,
            phone_number=order.phone_number,
            sms_code=order.sms_code,
            base_cost=order.base_cost,
            profit=order.profit,
            final_price=order.final_price,
            currency=order.currency,
            price_display=price_display,
            cancel_reason=order.cancel_reason,
            expires_at=order.expires_at.isoformat(),
            created_at=order.created_at.isoformat() if order.created_at else "",
        )


class OrderListResponse(BaseModel):
    items: list[OrderItem]
    next_cursor: str | None
    has_more: bool


class RefundResponse(BaseModel):
    order_id: str
    refunded: bool                      # False = order was already terminal
    transaction_id: str | None = None
    amount: Decimal | None = None
    status: OrderStatus


class OrderStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    revenue: Decimal                    # sum of final_price over COMPLETED
    profit: Decimal                     # sum of profit over COMPLETED
    refunded: Decimal                   # sum of final_price over refunded exits


class ExpirySweepResponse(BaseModel):
    examined: int
    expired: int
    failed: int
