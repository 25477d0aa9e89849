"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Wallet
  3xxx: Pricing
  4xxx: Order
  5xxx: Provider
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1006, f"User not found: {user_id}", 404)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1007, "Admin privileges required", 403)


# --- 2xxx: Wallet ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            402,
        )


class InsufficientFundsError(AppError):
    """Raised by the ledger itself when a guarded debit matches no row."""

    def __init__(self, user_id: str, amount: object) -> None:
        super().__init__(2003, f"Insufficient funds for user {user_id}: debit {amount}", 402)


class InvalidAmountError(AppError):
    def __init__(self, amount: object) -> None:
        super().__init__(2004, f"Amount must be positive, got {amount}", 422)


# --- 3xxx: Pricing ---

class PricingRuleNotFoundError(AppError):
    def __init__(self, rule_id: str) -> None:
        super().__init__(3001, f"Pricing rule not found: {rule_id}", 404)


class InvalidPriceError(AppError):
    def __init__(self, service_code: str, country: str, price: object) -> None:
        super().__init__(
            3002, f"Service {service_code} in {country} priced at {price}; not orderable", 422
        )


# --- 4xxx: Order ---

class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class OrderNotCancellableError(AppError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(4006, f"Order {order_id} in status {status} cannot be cancelled", 409)


class ProviderRequestFailedError(AppError):
    def __init__(self, detail: str = "Failed to secure a number from the provider") -> None:
        super().__init__(4007, detail, 502)


class NoProviderAvailableError(AppError):
    def __init__(self, service_code: str, country: str) -> None:
        super().__init__(
            4008, f"No provider available for service {service_code} in {country}", 503
        )


class RefundFailedError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4009, f"Refund failed for order {order_id}", 500)


class OrderAccessDeniedError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4010, f"Order {order_id} belongs to another user", 403)


# --- 5xxx: Provider ---

class ProviderError(AppError):
    """Base for failures talking to an upstream SMS vendor."""


class ProviderUnavailableError(ProviderError):
    def __init__(self, provider: str, detail: str) -> None:
        self.provider = provider
        super().__init__(5001, f"Provider {provider} unavailable: {detail}", 502)


class ServiceNotSupportedError(ProviderError):
    def __init__(self, provider: str, service_code: str, country: str) -> None:
        self.provider = provider
        super().__init__(
            5002,
            f"Provider {provider} does not support service {service_code} in {country}",
            422,
        )


class ProviderRateLimitedError(ProviderError):
    def __init__(self, provider: str, retry_after: float | None = None) -> None:
        self.provider = provider
        self.retry_after = retry_after
        super().__init__(5003, f"Provider {provider} rate limit exceeded", 429)


class ProviderNotFoundError(AppError):
    def __init__(self, provider_id: str) -> None:
        super().__init__(5004, f"Provider not found: {provider_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
