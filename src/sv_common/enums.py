"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    WAITING_FOR_SMS = "WAITING_FOR_SMS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_ORDER_STATUSES


TERMINAL_ORDER_STATUSES = frozenset(
    {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
        OrderStatus.EXPIRED,
        OrderStatus.REFUNDED,
    }
)


class RefundReason(str, Enum):
    USER_CANCELLED = "USER_CANCELLED"
    PROVIDER_FAILURE = "PROVIDER_FAILURE"
    EXPIRED = "EXPIRED"
    ADMIN = "ADMIN"


class TransactionType(str, Enum):
    # Debits
    ORDER_PAYMENT = "ORDER_PAYMENT"
    WITHDRAWAL = "WITHDRAWAL"
    # Credits
    REFUND = "REFUND"
    DEPOSIT = "DEPOSIT"
    BONUS = "BONUS"
    REFERRAL_REWARD = "REFERRAL_REWARD"
    # Either direction
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ProfitType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class HealthStatus(str, Enum):
    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
