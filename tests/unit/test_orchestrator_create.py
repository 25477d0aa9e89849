"""OrderOrchestrator.create_order: payment, reservation and the refund-on-failure paths."""

from decimal import Decimal

import pytest

from src.sv_common.enums import OrderStatus, TransactionType, UserStatus
from src.sv_common.errors import (
    AccountDisabledError,
    InsufficientBalanceError,
    InvalidPriceError,
    NoProviderAvailableError,
    ProviderRequestFailedError,
    ProviderUnavailableError,
    ServiceNotSupportedError,
    UserNotFoundError,
)
from src.sv_order.domain.models import Order
from tests.unit.fakes import (
    T0,
    FakeAdapter,
    FakeOrderRepo,
    make_rule,
    make_user,
    make_world,
)


class TestCreateOrderHappyPath:
    async def test_debits_and_reserves(self) -> None:
        w = make_world("100.00")

        order = await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        assert order.status == OrderStatus.WAITING_FOR_SMS
        assert order.phone_number == "+15550001111"
        assert order.external_id == "ext-1"
        assert order.base_cost == Decimal("1.50")
        assert order.profit == Decimal("0.30")
        assert order.final_price == Decimal("1.80")
        assert order.provider_id == "sms-man"
        assert order.expires_at == T0.replace(minute=20)
        assert w.balance() == Decimal("98.20")

    async def test_single_payment_transaction(self) -> None:
        w = make_world("100.00")

        order = await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        txs = w.store.transactions_of(order.id)
        assert [t.type for t in txs] == [TransactionType.ORDER_PAYMENT]
        assert txs[0].balance_before == Decimal("100.00")
        assert txs[0].balance_after == Decimal("98.20")
        assert w.order(order.id).transaction_id == txs[0].id

    async def test_commits_before_and_after_provider_call(self) -> None:
        w = make_world()
        await w.orchestrator.create_order(w.db, "user-1", "wa", "US")
        assert w.db.commits == 2
        assert w.adapter.requested == [("wa", "US")]

    async def test_applies_pricing_rule(self) -> None:
        w = make_world(rules=[make_rule("1", "wa", "US", profit_value="100")])
        order = await w.orchestrator.create_order(w.db, "user-1", "wa", "US")
        assert order.final_price == Decimal("3.00")

    async def test_invalidates_status_cache(self) -> None:
        w = make_world()
        order = await w.orchestrator.create_order(w.db, "user-1", "wa", "US")
        assert order.id in w.cache.invalidated


class TestCreateOrderRejections:
    async def test_insufficient_balance_leaves_no_rows(self) -> None:
        w = make_world("1.00")

        with pytest.raises(InsufficientBalanceError):
            await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        assert w.balance() == Decimal("1.00")
        assert w.store.orders == {}
        assert w.store.transactions == []
        assert w.adapter.requested == []

    async def test_unknown_user(self) -> None:
        w = make_world()
        with pytest.raises(UserNotFoundError):
            await w.orchestrator.create_order(w.db, "ghost", "wa", "US")

    async def test_suspended_user(self) -> None:
        w = make_world()
        w.store.users["user-2"] = make_user("user-2", status=UserStatus.SUSPENDED)
        with pytest.raises(AccountDisabledError):
            await w.orchestrator.create_order(w.db, "user-2", "wa", "US")

    async def test_no_provider_for_country(self) -> None:
        w = make_world()
        with pytest.raises(NoProviderAvailableError):
            await w.orchestrator.create_order(w.db, "user-1", "wa", "JP")
        assert w.store.orders == {}

    async def test_service_not_supported_propagates(self) -> None:
        w = make_world()
        w.adapter.quote_error = ServiceNotSupportedError("sms-man", "zz", "US")
        with pytest.raises(ServiceNotSupportedError):
            await w.orchestrator.create_order(w.db, "user-1", "zz", "US")
        assert w.store.transactions == []

    async def test_quote_failure_is_provider_request_failed(self) -> None:
        w = make_world()
        w.adapter.quote_error = ProviderUnavailableError("sms-man", "HTTP 500")
        with pytest.raises(ProviderRequestFailedError):
            await w.orchestrator.create_order(w.db, "user-1", "wa", "US")
        assert w.balance() == Decimal("100.00")
        assert w.store.transactions == []

    async def test_zero_price_rejected_before_debit(self) -> None:
        w = make_world(adapter=FakeAdapter(price=Decimal("0.004")))

        with pytest.raises(InvalidPriceError):
            await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        assert w.store.orders == {}
        assert w.store.transactions == []
        assert w.adapter.requested == []


class TestCreateOrderNoLimbo:
    async def test_number_request_failure_refunds(self) -> None:
        w = make_world("100.00")
        w.adapter.request_error = ProviderUnavailableError("sms-man", "no numbers")

        with pytest.raises(ProviderRequestFailedError):
            await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        (order,) = w.store.orders.values()
        assert order.status == OrderStatus.FAILED
        assert order.cancel_reason == "PROVIDER_FAILURE"
        assert w.balance() == Decimal("100.00")
        types = [t.type for t in w.store.transactions_of(order.id)]
        assert types == [TransactionType.ORDER_PAYMENT, TransactionType.REFUND]

    async def test_unexpected_adapter_error_refunds(self) -> None:
        w = make_world()
        w.adapter.request_error = RuntimeError("boom")

        with pytest.raises(ProviderRequestFailedError):
            await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        assert w.balance() == Decimal("100.00")

    async def test_persist_failure_cancels_and_refunds(self) -> None:
        w = make_world()

        class _BrokenRepo(FakeOrderRepo):
            async def mark_reserved(self, *args: object, **kwargs: object) -> Order | None:
                raise RuntimeError("connection reset")

        w.orchestrator._orders = _BrokenRepo(w.store)

        with pytest.raises(ProviderRequestFailedError):
            await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        (order,) = w.store.orders.values()
        assert order.status == OrderStatus.FAILED
        assert w.adapter.cancelled == ["ext-1"]
        assert w.balance() == Decimal("100.00")

    async def test_order_moved_on_during_reservation(self) -> None:
        w = make_world()

        def _expire_meanwhile() -> None:
            for order in w.store.orders.values():
                order.status = OrderStatus.EXPIRED

        w.adapter.on_request = _expire_meanwhile

        order = await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        assert order.status == OrderStatus.EXPIRED
        assert w.adapter.cancelled == ["ext-1"]

    async def test_every_failure_keeps_ledger_consistent(self) -> None:
        w = make_world("10.00")
        w.adapter.request_error = ProviderUnavailableError("sms-man", "timeout")
        for _ in range(3):
            with pytest.raises(ProviderRequestFailedError):
                await w.orchestrator.create_order(w.db, "user-1", "wa", "US")

        total = sum((t.signed_amount for t in w.store.transactions), Decimal("10.00"))
        assert w.balance() == total == Decimal("10.00")
        assert all(o.status == OrderStatus.FAILED for o in w.store.orders.values())
