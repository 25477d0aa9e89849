"""OrderOrchestrator — the order state machine.

    PENDING ──► WAITING_FOR_SMS ──► COMPLETED
       │               │
       └───────────────┴──► FAILED | CANCELLED | EXPIRED | REFUNDED

Money rules:
  * the payment debit and the order insert commit together or not at all;
  * no provider call runs inside an open write transaction;
  * every failure between the debit and a persisted reservation refunds
    before the error reaches the caller;
  * refunds lock the order row, so an order is refunded at most once.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_cache.status_cache import StatusCache
from src.sv_common.datetime_utils import utc_now
from src.sv_common.enums import LogLevel, OrderStatus, RefundReason, TransactionType
from src.sv_common.errors import (
    AccountDisabledError,
    InsufficientBalanceError,
    InsufficientFundsError,
    InvalidPriceError,
    OrderAccessDeniedError,
    OrderNotCancellableError,
    OrderNotFoundError,
    ProviderError,
    ProviderRequestFailedError,
    RefundFailedError,
    ServiceNotSupportedError,
    UserNotFoundError,
)
from src.sv_common.id_generator import generate_id, generate_order_number
from src.sv_common.money import money_to_display
from src.sv_common.pagination import cursor_decode, cursor_encode
from src.sv_common.system_log import SystemLogRepository
from src.sv_order.application.schemas import (
    ExpirySweepResponse,
    OrderItem,
    OrderListResponse,
    OrderStatusView,
)
from src.sv_order.domain.models import REFUND_TARGET_STATUS, Order
from src.sv_order.domain.repository import OrderRepositoryProtocol
from src.sv_order.infrastructure.persistence import OrderRepository
from src.sv_pricing.application.pricing_engine import PricingEngine
from src.sv_provider.application.registry import ProviderRegistry
from src.sv_provider.domain.adapter import ProviderAdapter
from src.sv_wallet.application.ledger import WalletLedger
from src.sv_wallet.domain.models import Transaction
from src.sv_wallet.domain.repository import WalletRepositoryProtocol
from src.sv_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)

_LOG_SERVICE = "order"


class OrderOrchestrator:
    def __init__(
        self,
        registry: ProviderRegistry,
        pricing: PricingEngine | None = None,
        ledger: WalletLedger | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
        cache: StatusCache | None = None,
        log_repo: SystemLogRepository | None = None,
        order_ttl_minutes: int = 20,
        poll_interval_seconds: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._registry = registry
        self._pricing = pricing or PricingEngine()
        self._wallet_repo: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._ledger = ledger or WalletLedger(self._wallet_repo)
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._cache = cache or StatusCache()
        self._log_repo = log_repo or SystemLogRepository()
        self._order_ttl = timedelta(minutes=order_ttl_minutes)
        self._poll_interval = timedelta(seconds=poll_interval_seconds)
        self._clock = clock

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_order(
        self,
        db: AsyncSession,
        user_id: str,
        service_code: str,
        country: str,
        preferred_provider: str | None = None,
    ) -> Order:
        user = await self._wallet_repo.get_user(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        if not user.is_active:
            raise AccountDisabledError()

        provider, adapter = await self._registry.select_provider(
            db, service_code, country, preferred_provider
        )
        try:
            base_cost = await adapter.quote_price(service_code, country)
        except ServiceNotSupportedError:
            raise
        except ProviderError as exc:
            logger.warning("Price lookup at %s failed: %s", provider.name, exc.message)
            raise ProviderRequestFailedError(exc.message) from exc

        price = await self._pricing.calculate_price(db, base_cost, service_code, country)
        if price.final_price <= 0:
            raise InvalidPriceError(service_code, country, price.final_price)
        if user.balance < price.final_price:
            raise InsufficientBalanceError(price.final_price, user.balance)

        order_id = generate_id()
        try:
            payment = await self._ledger.debit(
                db,
                user_id,
                price.final_price,
                TransactionType.ORDER_PAYMENT,
                f"Payment for {service_code} in {country}",
                order_id=order_id,
            )
            order = await self._orders.insert_order(
                db,
                Order(
                    id=order_id,
                    order_number=generate_order_number(),
                    user_id=user_id,
                    provider_id=provider.name,
                    service_code=service_code,
                    country=country,
                    base_cost=price.base_cost,
                    profit=price.profit,
                    final_price=price.final_price,
                    currency=user.currency,
                    expires_at=self._clock() + self._order_ttl,
                    status=OrderStatus.PENDING,
                    transaction_id=payment.id,
                ),
            )
            await db.commit()
        except InsufficientFundsError as exc:
            # Balance moved between the check and the guarded debit
            await db.rollback()
            raise InsufficientBalanceError(price.final_price, user.balance) from exc
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Order %s created: user=%s provider=%s %s/%s price=%s",
            order.order_number, user_id, provider.name, service_code, country, order.final_price,
        )

        try:
            reservation = await adapter.request_number(service_code, country)
        except Exception as exc:
            logger.warning("Number request for order %s failed: %r", order.order_number, exc)
            await self.refund_order(db, order.id, RefundReason.PROVIDER_FAILURE)
            if isinstance(exc, ProviderError):
                raise ProviderRequestFailedError(exc.message) from exc
            raise ProviderRequestFailedError() from exc

        try:
            reserved = await self._orders.mark_reserved(
                db, order.id, reservation.external_id, reservation.phone_number, reservation.cost
            )
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.error("Persisting reservation for order %s failed: %r", order.order_number, exc)
            order.external_id = reservation.external_id
            await self._cancel_at_provider(db, order, adapter)
            await self.refund_order(db, order.id, RefundReason.PROVIDER_FAILURE)
            raise ProviderRequestFailedError("Failed to record the reserved number") from exc

        await self._cache.invalidate(order.id)
        if reserved is None:
            # Cancelled or expired while the vendor call was in flight
            order.external_id = reservation.external_id
            await self._cancel_at_provider(db, order, adapter)
            current = await self._orders.get_order(db, order.id)
            return current or order

        logger.info(
            "Order %s waiting for SMS on %s (external=%s)",
            reserved.order_number, reserved.phone_number, reserved.external_id,
        )
        return reserved

    # ------------------------------------------------------------------
    # Refund / cancel
    # ------------------------------------------------------------------

    async def refund_order(
        self,
        db: AsyncSession,
        order_id: str,
        reason: RefundReason,
        actor_id: str | None = None,
    ) -> Transaction | None:
        """Credit ``final_price`` back and move the order to its exit state.

        Returns the REFUND transaction, or None when the order was already
        terminal (nothing changed). ADMIN may also refund a COMPLETED order.
        """
        try:
            order = await self._orders.get_order_for_update(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            if not order.refundable_for(reason):
                await db.rollback()
                logger.warning(
                    "Refund (%s) skipped: order %s already %s",
                    reason.value, order.order_number, order.status.value,
                )
                return None

            refund = await self._ledger.credit(
                db,
                order.user_id,
                order.final_price,
                TransactionType.REFUND,
                f"Refund for order {order.order_number} ({reason.value})",
                order_id=order.id,
            )
            target = REFUND_TARGET_STATUS[reason]
            await self._orders.set_status(db, order.id, target, reason.value)
            await self._log_repo.write(
                db,
                LogLevel.INFO,
                _LOG_SERVICE,
                f"Order {order.order_number} refunded ({reason.value})",
                {
                    "order_id": order.id,
                    "user_id": order.user_id,
                    "amount": str(order.final_price),
                    "previous_status": order.status.value,
                    "status": target.value,
                    "transaction_id": refund.id,
                    "actor_id": actor_id,
                },
            )
            await db.commit()
        except OrderNotFoundError:
            await db.rollback()
            raise
        except Exception as exc:
            await db.rollback()
            logger.critical(
                "Refund (%s) failed for order %s", reason.value, order_id, exc_info=True
            )
            await self._log_repo.write_detached(
                db,
                LogLevel.CRITICAL,
                _LOG_SERVICE,
                f"Refund failed for order {order_id}",
                {"order_id": order_id, "reason": reason.value, "actor_id": actor_id},
                repr(exc),
            )
            raise RefundFailedError(order_id) from exc

        await self._cache.invalidate(order_id)
        logger.info(
            "Order %s → %s, refunded %s (%s)",
            order.order_number, target.value, order.final_price, refund.transaction_number,
        )
        return refund

    async def cancel_order(
        self, db: AsyncSession, order_id: str, user_id: str | None = None
    ) -> Order:
        """Cancel and refund a live order. ``user_id=None`` skips the owner check (admin)."""
        order = await self._orders.get_order(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if (user_id is not None and order.user_id != user_id) or order.is_terminal:
            raise OrderNotCancellableError(order_id, order.status.value)

        await self._cancel_at_provider(db, order)
        refund = await self.refund_order(
            db, order.id, RefundReason.USER_CANCELLED, actor_id=user_id
        )
        current = await self._orders.get_order(db, order.id)
        if refund is None:
            # Completed or expired concurrently
            status = current.status.value if current else order.status.value
            raise OrderNotCancellableError(order_id, status)
        return current or order

    async def _cancel_at_provider(
        self,
        db: AsyncSession,
        order: Order,
        adapter: ProviderAdapter | None = None,
    ) -> None:
        """Best-effort release of the number; failures are logged, never raised."""
        if not order.external_id:
            return
        adapter = adapter or self._registry.find(order.provider_id)
        if adapter is None:
            logger.warning(
                "No adapter %s to cancel order %s", order.provider_id, order.order_number
            )
            return
        metadata: dict[str, object] = {
            "order_id": order.id,
            "provider": order.provider_id,
            "external_id": order.external_id,
        }
        try:
            await adapter.cancel_number(order.external_id)
        except Exception as exc:
            logger.warning(
                "Provider cancellation failed for order %s: %r", order.order_number, exc
            )
            await self._log_repo.write_detached(
                db, LogLevel.WARN, _LOG_SERVICE,
                f"Provider cancellation failed for order {order.order_number}",
                metadata, repr(exc),
            )
            return
        await self._log_repo.write_detached(
            db, LogLevel.INFO, _LOG_SERVICE,
            f"Provider cancellation executed for order {order.order_number}",
            metadata,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_order_status(
        self, db: AsyncSession, order_id: str, user_id: str | None = None
    ) -> OrderStatusView:
        """Pure read: cache, then DB. Never calls a provider, never writes."""
        cached = await self._cache.get(order_id)
        if cached is not None:
            self._check_owner(cached.user_id, user_id, order_id)
            return cached
        order = await self._orders.get_order(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        self._check_owner(order.user_id, user_id, order_id)
        return OrderStatusView.from_domain(order)

    async def refresh_and_get_status(
        self, db: AsyncSession, order_id: str, user_id: str | None = None
    ) -> OrderStatusView:
        """Status read with side effects: lazy expiry and opportunistic SMS polling."""
        cached = await self._cache.get(order_id)
        if cached is not None:
            self._check_owner(cached.user_id, user_id, order_id)
            if cached.is_terminal or not self._needs_refresh(cached, self._clock()):
                return cached

        order = await self._orders.get_order(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        self._check_owner(order.user_id, user_id, order_id)

        polled_at = cached.polled_at if cached is not None else None
        now = self._clock()
        if order.is_overdue(now):
            order, _ = await self._settle_overdue(db, order)
            polled_at = now
        elif self._poll_due(order.status, order.sms_code, polled_at, now):
            order = await self._poll(db, order)
            polled_at = now

        view = OrderStatusView.from_domain(order, polled_at)
        await self._cache.set(order_id, view)
        return view

    def _needs_refresh(self, view: OrderStatusView, now: datetime) -> bool:
        return now >= view.expires_at or self._poll_due(
            view.status, view.sms_code, view.polled_at, now
        )

    def _poll_due(
        self,
        status: OrderStatus,
        sms_code: str | None,
        polled_at: datetime | None,
        now: datetime,
    ) -> bool:
        if status != OrderStatus.WAITING_FOR_SMS or sms_code:
            return False
        return polled_at is None or now - polled_at >= self._poll_interval

    async def _poll(self, db: AsyncSession, order: Order) -> Order:
        adapter = self._registry.find(order.provider_id)
        if adapter is None or not order.external_id:
            return order
        try:
            result = await adapter.poll_for_code(order.external_id)
        except Exception as exc:
            logger.warning("SMS poll failed for order %s: %r", order.order_number, exc)
            return order
        if result is None:
            return order

        try:
            completed = await self._orders.complete_with_code(
                db, order.id, result.code, result.message
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        await self._cache.invalidate(order.id)
        if completed is None:
            logger.info(
                "Code for order %s arrived after it left WAITING_FOR_SMS", order.order_number
            )
            return await self._orders.get_order(db, order.id) or order
        logger.info("Order %s completed with SMS code", order.order_number)
        return completed

    async def _settle_overdue(
        self, db: AsyncSession, order: Order
    ) -> tuple[Order, Transaction | None]:
        """Last poll, unthrottled, then expire whatever is still live.

        A code that reached the vendor before ``expires_at`` completes the
        order instead of being discarded with the number.
        """
        if order.status == OrderStatus.WAITING_FOR_SMS and not order.sms_code:
            order = await self._poll(db, order)
        if order.is_terminal:
            return order, None
        await self._cancel_at_provider(db, order)
        refund = await self.refund_order(db, order.id, RefundReason.EXPIRED)
        return await self._orders.get_order(db, order.id) or order, refund

    @staticmethod
    def _check_owner(owner_id: str, user_id: str | None, order_id: str) -> None:
        if user_id is not None and owner_id != user_id:
            raise OrderAccessDeniedError(order_id)

    # ------------------------------------------------------------------
    # Listing / sweep
    # ------------------------------------------------------------------

    async def list_orders(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        limit: int,
        cursor: str | None,
    ) -> OrderListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        orders = await self._orders.list_orders(db, user_id, status, cursor_id, limit + 1)
        has_more = len(orders) > limit
        page = orders[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return OrderListResponse(
            items=[
                OrderItem.from_domain(o, money_to_display(o.final_price, o.currency))
                for o in page
            ],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def expire_overdue_orders(
        self, db: AsyncSession, limit: int = 100
    ) -> ExpirySweepResponse:
        """Expire and refund every live order past ``expires_at``, up to ``limit``.

        Backs the scheduled sweep, so funds never stay held by an order no
        client is reading. One failing order does not stop the sweep.
        """
        overdue = await self._orders.list_overdue_orders(db, self._clock(), limit)
        await db.rollback()
        expired = failed = 0
        for order in overdue:
            try:
                # The listing is a snapshot; the order may have settled since
                current = await self._orders.get_order(db, order.id)
                if current is None or not current.is_overdue(self._clock()):
                    continue
                _, refund = await self._settle_overdue(db, current)
                if refund is not None:
                    expired += 1
            except Exception:
                failed += 1
                logger.exception("Expiry sweep failed for order %s", order.order_number)
        if overdue:
            logger.info(
                "Expiry sweep: %d overdue, %d expired, %d failed", len(overdue), expired, failed
            )
        return ExpirySweepResponse(examined=len(overdue), expired=expired, failed=failed)
