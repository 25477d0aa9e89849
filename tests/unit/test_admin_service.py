"""AdminService: stats aggregation, admin refunds and provider overrides."""

from decimal import Decimal

import pytest

from src.sv_admin.application.schemas import ProviderUpdateRequest
from src.sv_admin.application.service import AdminService
from src.sv_common.enums import HealthStatus, OrderStatus, TransactionType
from src.sv_common.errors import OrderNotFoundError, ProviderNotFoundError
from src.sv_provider.application.registry import ProviderRegistry
from tests.unit.fakes import (
    FakeAdapter,
    FakeLogRepo,
    FakeOrderRepo,
    FakeProviderRepo,
    FakeSession,
    FakeStore,
    make_order,
    make_provider,
    make_world,
)


class TestOrderStats:
    async def test_revenue_counts_completed_only(self) -> None:
        store = FakeStore()
        for order in (
            make_order("1", status=OrderStatus.COMPLETED),
            make_order("2", status=OrderStatus.COMPLETED, final_price=Decimal("2.00")),
            make_order("3", status=OrderStatus.CANCELLED),
            make_order("4", status=OrderStatus.WAITING_FOR_SMS),
        ):
            store.orders[order.id] = order
        service = AdminService(FakeOrderRepo(store), FakeLogRepo(store))

        stats = await service.order_stats(FakeSession(store))

        assert stats.total == 4
        assert stats.by_status["COMPLETED"] == 2
        assert stats.revenue == Decimal("3.80")
        assert stats.profit == Decimal("0.80")
        assert stats.refunded == Decimal("1.80")

    async def test_empty(self) -> None:
        store = FakeStore()
        stats = await AdminService(FakeOrderRepo(store)).order_stats(FakeSession(store))
        assert stats.total == 0
        assert stats.revenue == Decimal("0")


class TestAdminRefund:
    async def test_refund_live_order(self) -> None:
        w = make_world(balance="10.00", orders=[make_order()])
        service = AdminService(w.orders, FakeLogRepo(w.store))

        response = await service.refund_order(w.db, w.orchestrator, "1001", "admin-1")

        assert response.refunded is True
        assert response.amount == Decimal("1.80")
        assert response.status == OrderStatus.REFUNDED
        assert w.balance() == Decimal("11.80")
        refunds = [t for t in w.store.transactions_of("1001") if t.type == TransactionType.REFUND]
        assert len(refunds) == 1

    async def test_second_refund_is_a_no_op(self) -> None:
        w = make_world(balance="10.00", orders=[make_order()])
        service = AdminService(w.orders, FakeLogRepo(w.store))
        await service.refund_order(w.db, w.orchestrator, "1001", "admin-1")

        response = await service.refund_order(w.db, w.orchestrator, "1001", "admin-1")

        assert response.refunded is False
        assert response.transaction_id is None
        assert w.balance() == Decimal("11.80")

    async def test_unknown_order(self) -> None:
        w = make_world()
        with pytest.raises(OrderNotFoundError):
            await AdminService(w.orders).refund_order(w.db, w.orchestrator, "404", "admin-1")


class TestProviders:
    def _setup(self) -> tuple[AdminService, ProviderRegistry, FakeStore]:
        store = FakeStore()
        registry = ProviderRegistry(
            [FakeAdapter("sms-man")],
            FakeProviderRepo([make_provider("sms-man"), make_provider("textverified", 5)]),
        )
        return AdminService(FakeOrderRepo(store), FakeLogRepo(store)), registry, store

    async def test_list_marks_adapterless_providers(self) -> None:
        service, registry, store = self._setup()

        items = await service.list_providers(FakeSession(store), registry)

        assert {i.name: i.has_adapter for i in items} == {"sms-man": True, "textverified": False}

    async def test_update_provider_audits_changes(self) -> None:
        service, registry, store = self._setup()
        db = FakeSession(store)

        item = await service.update_provider(
            db, registry, "sms-man",
            ProviderUpdateRequest(is_active=False, health_status=HealthStatus.HEALTHY),
            "admin-1",
        )

        assert item.is_active is False
        assert db.commits == 1
        assert store.logs[-1]["metadata"]["changes"] == {
            "is_active": False, "health_status": "HEALTHY"
        }

    async def test_update_unknown_provider(self) -> None:
        service, registry, store = self._setup()
        db = FakeSession(store)
        with pytest.raises(ProviderNotFoundError):
            await service.update_provider(
                db, registry, "ghost", ProviderUpdateRequest(priority=1), "admin-1"
            )
        assert db.rollbacks == 1
        assert store.logs == []
