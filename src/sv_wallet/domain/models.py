"""Domain models for sv_wallet — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.sv_common.enums import TransactionStatus, TransactionType, UserRole, UserStatus

CREDIT_TYPES = frozenset(
    {
        TransactionType.REFUND,
        TransactionType.DEPOSIT,
        TransactionType.BONUS,
        TransactionType.REFERRAL_REWARD,
    }
)
DEBIT_TYPES = frozenset({TransactionType.ORDER_PAYMENT, TransactionType.WITHDRAWAL})


@dataclass
class User:
    id: str
    email: str
    balance: Decimal
    currency: str
    status: UserStatus = UserStatus.ACTIVE
    role: UserRole = UserRole.USER
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


@dataclass
class Transaction:
    id: str
    user_id: str
    transaction_number: str
    type: TransactionType
    amount: Decimal                  # always a positive magnitude
    currency: str
    balance_before: Decimal
    balance_after: Decimal
    status: TransactionStatus = TransactionStatus.COMPLETED
    order_id: str | None = None
    description: str | None = None
    reference: str | None = None
    created_at: datetime | None = None

    @property
    def signed_amount(self) -> Decimal:
        """+ for credits, - for debits; ADMIN_ADJUSTMENT follows the balance move."""
        if self.type in CREDIT_TYPES:
            return self.amount
        if self.type in DEBIT_TYPES:
            return -self.amount
        return self.amount if self.balance_after >= self.balance_before else -self.amount
