"""Domain models for sv_order — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.sv_common.enums import OrderStatus, RefundReason

# Where a refund leaves the order
REFUND_TARGET_STATUS: dict[RefundReason, OrderStatus] = {
    RefundReason.USER_CANCELLED: OrderStatus.CANCELLED,
    RefundReason.PROVIDER_FAILURE: OrderStatus.FAILED,
    RefundReason.EXPIRED: OrderStatus.EXPIRED,
    RefundReason.ADMIN: OrderStatus.REFUNDED,
}


@dataclass
class Order:
    id: str
    order_number: str
    user_id: str
    provider_id: str                 # adapter key of the provider, e.g. "sms-man"
    service_code: str
    country: str
    base_cost: Decimal
    profit: Decimal
    final_price: Decimal
    currency: str
    expires_at: datetime
    status: OrderStatus = OrderStatus.PENDING
    external_id: str | None = None
    phone_number: str | None = None
    sms_code: str | None = None
    sms_message: str | None = None
    provider_cost: Decimal | None = None
    cancel_reason: str | None = None
    transaction_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_overdue(self, now: datetime) -> bool:
        return not self.is_terminal and now >= self.expires_at

    def refundable_for(self, reason: RefundReason) -> bool:
        """Non-terminal orders always; admins may also refund a COMPLETED order."""
        if not self.is_terminal:
            return True
        return reason == RefundReason.ADMIN and self.status == OrderStatus.COMPLETED


@dataclass(frozen=True)
class StatusCount:
    status: OrderStatus
    count: int
    final_price_sum: Decimal
    profit_sum: Decimal
