"""Pydantic schemas for wallet endpoints."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from src.sv_common.money import money_to_display
from src.sv_wallet.domain.models import Transaction

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AdjustBalanceRequest(BaseModel):
    amount: Decimal = Field(
        ..., max_digits=14, decimal_places=2, description="Signed: + credits, - debits"
    )
    reason: str = Field(..., min_length=3, max_length=500)

    @field_validator("amount")
    @classmethod
    def non_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("amount must be non-zero")
        return value



class DepositRequest(BaseModel):
    """A payment the upstream gateway has already verified."""

    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    reference: str = Field(..., min_length=1, max_length=128, description="Gateway reference")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    balance: Decimal
    currency: str
    balance_display: str


class TransactionItem(BaseModel):
    id: str
    transaction_number: str
    type: str
    amount: Decimal
    signed_amount: Decimal
    currency: str
    amount_display: str
    balance_before: Decimal
    balance_after: Decimal
    status: str
    order_id: str | None
    description: str | None
    reference: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            transaction_number=tx.transaction_number,
            type=tx.type.value,
            amount=tx.amount,
            signed_amount=tx.signed_amount,
            currency=tx.currency,
            amount_display=money_to_display(tx.signed_amount, tx.currency),
            balance_before=tx.balance_before,
            balance_after=tx.balance_after,
            status=tx.status.value,
            order_id=tx.order_id,
            description=tx.description,
            reference=tx.reference,
            created_at=tx.created_at.isoformat() if tx.created_at else "",
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool
