"""Status reads: pure get_order_status vs refresh_and_get_status (expiry, polling)."""

from datetime import timedelta
from decimal import Decimal

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.sv_cache.status_cache import StatusCache
from src.sv_common.enums import OrderStatus, TransactionType
from src.sv_common.errors import OrderAccessDeniedError, OrderNotFoundError
from src.sv_order.application.schemas import OrderStatusView
from src.sv_provider.domain.models import SmsResult
from tests.unit.fakes import T0, make_order, make_world


def _refund_count(w: object) -> int:
    return sum(
        1 for t in w.store.transactions  # type: ignore[attr-defined]
        if t.type == TransactionType.REFUND
    )


class TestGetOrderStatus:
    async def test_reads_db_without_side_effects(self) -> None:
        w = make_world(orders=[make_order("1001")])
        w.clock.advance(minutes=30)

        view = await w.orchestrator.get_order_status(w.db, "1001", "user-1")

        assert view.status == OrderStatus.WAITING_FOR_SMS
        assert w.adapter.polled == []
        assert w.store.transactions == []
        assert w.cache.entries == {}

    async def test_prefers_cache(self) -> None:
        w = make_world(orders=[make_order("1001")])
        cached = OrderStatusView.from_domain(make_order("1001", status=OrderStatus.COMPLETED))
        w.cache.entries["1001"] = cached

        view = await w.orchestrator.get_order_status(w.db, "1001")

        assert view.status == OrderStatus.COMPLETED

    async def test_owner_check(self) -> None:
        w = make_world(orders=[make_order("1001", user_id="someone-else")])
        with pytest.raises(OrderAccessDeniedError):
            await w.orchestrator.get_order_status(w.db, "1001", "user-1")

    async def test_missing(self) -> None:
        w = make_world()
        with pytest.raises(OrderNotFoundError):
            await w.orchestrator.get_order_status(w.db, "nope")


class TestRefreshExpiry:
    async def test_overdue_order_expires_and_refunds_once(self) -> None:
        w = make_world("98.20", orders=[make_order("1001")])
        w.clock.advance(minutes=21)

        first = await w.orchestrator.refresh_and_get_status(w.db, "1001", "user-1")
        second = await w.orchestrator.refresh_and_get_status(w.db, "1001", "user-1")

        assert first.status == OrderStatus.EXPIRED
        assert second.status == OrderStatus.EXPIRED
        assert _refund_count(w) == 1
        assert w.balance() == Decimal("100.00")
        assert w.adapter.cancelled == ["ext-1"]

    async def test_expiry_boundary_is_inclusive(self) -> None:
        w = make_world(orders=[make_order("1001", expires_at=T0)])
        view = await w.orchestrator.refresh_and_get_status(w.db, "1001")
        assert view.status == OrderStatus.EXPIRED

    async def test_code_waiting_at_vendor_beats_expiry(self) -> None:
        w = make_world("98.20", orders=[make_order("1001")])
        w.adapter.sms = SmsResult(code="482913", message="Your code is 482913")
        w.clock.advance(minutes=21)

        view = await w.orchestrator.refresh_and_get_status(w.db, "1001", "user-1")

        assert view.status == OrderStatus.COMPLETED
        assert view.sms_code == "482913"
        assert w.adapter.polled == ["ext-1"]
        assert w.adapter.cancelled == []
        assert _refund_count(w) == 0
        assert w.balance() == Decimal("98.20")

    async def test_overdue_poll_ignores_throttle(self) -> None:
        w = make_world(orders=[make_order("1001", expires_at=T0 + timedelta(seconds=2))])
        await w.orchestrator.refresh_and_get_status(w.db, "1001")
        w.adapter.sms = SmsResult(code="1234")
        w.clock.advance(seconds=3)

        view = await w.orchestrator.refresh_and_get_status(w.db, "1001")

        assert w.adapter.polled == ["ext-1", "ext-1"]
        assert view.status == OrderStatus.COMPLETED

    async def test_cached_live_view_rechecked_after_expiry(self) -> None:
        w = make_world(orders=[make_order("1001")])
        await w.orchestrator.refresh_and_get_status(w.db, "1001")
        w.clock.advance(minutes=20)

        view = await w.orchestrator.refresh_and_get_status(w.db, "1001")

        assert view.status == OrderStatus.EXPIRED
        assert _refund_count(w) == 1


class TestRefreshPolling:
    async def test_code_completes_order(self) -> None:
        w = make_world(orders=[make_order("1001")])
        w.adapter.sms = SmsResult(code="482913", message="Your code is 482913")

        view = await w.orchestrator.refresh_and_get_status(w.db, "1001", "user-1")

        assert view.status == OrderStatus.COMPLETED
        assert view.sms_code == "482913"
        assert w.order("1001").sms_message == "Your code is 482913"
        assert w.store.transactions == []

    async def test_polls_are_throttled(self) -> None:
        w = make_world(orders=[make_order("1001")])

        await w.orchestrator.refresh_and_get_status(w.db, "1001")
        await w.orchestrator.refresh_and_get_status(w.db, "1001")
        assert w.adapter.polled == ["ext-1"]

        w.clock.advance(seconds=6)
        view = await w.orchestrator.refresh_and_get_status(w.db, "1001")

        assert w.adapter.polled == ["ext-1", "ext-1"]
        assert view.polled_at == w.clock.now

    async def test_poll_error_keeps_waiting(self) -> None:
        w = make_world(orders=[make_order("1001")])
        w.adapter.poll_error = RuntimeError("vendor down")

        view = await w.orchestrator.refresh_and_get_status(w.db, "1001")

        assert view.status == OrderStatus.WAITING_FOR_SMS

    async def test_terminal_cached_view_served_without_db(self) -> None:
        w = make_world(orders=[make_order("1001")])
        w.adapter.sms = SmsResult(code="1234")
        await w.orchestrator.refresh_and_get_status(w.db, "1001")
        del w.store.orders["1001"]

        view = await w.orchestrator.refresh_and_get_status(w.db, "1001")

        assert view.status == OrderStatus.COMPLETED

    async def test_access_denied_on_cached_view(self) -> None:
        w = make_world(orders=[make_order("1001")])
        await w.orchestrator.refresh_and_get_status(w.db, "1001", "user-1")
        with pytest.raises(OrderAccessDeniedError):
            await w.orchestrator.refresh_and_get_status(w.db, "1001", "intruder")


class TestCacheOutage:
    async def test_status_read_survives_redis_down(self) -> None:
        async def _redis_down() -> object:
            raise RedisConnectionError("redis unavailable")

        w = make_world(orders=[make_order("1001")])
        w.orchestrator._cache = StatusCache(redis_factory=_redis_down)
        w.adapter.sms = SmsResult(code="777111")

        view = await w.orchestrator.refresh_and_get_status(w.db, "1001", "user-1")

        assert view.status == OrderStatus.COMPLETED


class TestListOrders:
    async def test_paginates_newest_first(self) -> None:
        w = make_world()
        created = [
            await w.orchestrator.create_order(w.db, "user-1", "wa", "US") for _ in range(3)
        ]

        first = await w.orchestrator.list_orders(w.db, "user-1", None, 2, None)
        second = await w.orchestrator.list_orders(w.db, "user-1", None, 2, first.next_cursor)

        ids = [i.id for i in first.items] + [i.id for i in second.items]
        assert ids == [o.id for o in reversed(created)]
        assert first.has_more is True
        assert second.has_more is False
        assert first.items[0].price_display == "NGN 1.80"

    async def test_status_filter(self) -> None:
        w = make_world(
            orders=[make_order("1"), make_order("2", status=OrderStatus.COMPLETED)]
        )
        page = await w.orchestrator.list_orders(w.db, "user-1", "COMPLETED", 20, None)
        assert [i.id for i in page.items] == ["2"]


class TestExpirySweep:
    async def test_expires_only_overdue_orders(self) -> None:
        w = make_world(
            "96.40",
            orders=[
                make_order("1001"),
                make_order("1002", status=OrderStatus.PENDING, external_id=None),
                make_order("1003", expires_at=T0 + timedelta(hours=1)),
            ],
        )
        w.clock.advance(minutes=25)

        result = await w.orchestrator.expire_overdue_orders(w.db, limit=10)

        assert (result.examined, result.expired, result.failed) == (2, 2, 0)
        assert w.order("1001").status == OrderStatus.EXPIRED
        assert w.order("1002").status == OrderStatus.EXPIRED
        assert w.order("1003").status == OrderStatus.WAITING_FOR_SMS
        assert w.balance() == Decimal("100.00")

    async def test_one_failure_does_not_stop_sweep(self) -> None:
        w = make_world(
            orders=[
                make_order("1001", user_id="deleted-user"),
                make_order("1002", expires_at=T0 + timedelta(minutes=21)),
            ]
        )
        w.clock.advance(minutes=30)

        result = await w.orchestrator.expire_overdue_orders(w.db)

        assert (result.examined, result.expired, result.failed) == (2, 1, 1)
        assert w.order("1002").status == OrderStatus.EXPIRED

    async def test_nothing_overdue(self) -> None:
        w = make_world(orders=[make_order("1001")])
        result = await w.orchestrator.expire_overdue_orders(w.db)
        assert result.examined == 0

    async def test_code_at_vendor_completes_instead_of_expiring(self) -> None:
        w = make_world(orders=[make_order("1001")])
        w.adapter.sms = SmsResult(code="909090")
        w.clock.advance(minutes=25)

        result = await w.orchestrator.expire_overdue_orders(w.db)

        assert (result.examined, result.expired, result.failed) == (1, 0, 0)
        assert w.order("1001").status == OrderStatus.COMPLETED
        assert w.adapter.cancelled == []

    async def test_order_settled_after_listing_is_left_alone(self) -> None:
        w = make_world(orders=[make_order("1001")])
        w.clock.advance(minutes=25)
        listed = w.orders.list_overdue_orders

        async def list_then_complete(db: object, now: object, limit: int) -> list[object]:
            rows = await listed(db, now, limit)  # type: ignore[arg-type]
            await w.orders.complete_with_code(db, "1001", "555000", None)
            await w.db.commit()
            return rows

        w.orders.list_overdue_orders = list_then_complete  # type: ignore[method-assign]

        result = await w.orchestrator.expire_overdue_orders(w.db)

        assert (result.examined, result.expired, result.failed) == (1, 0, 0)
        assert w.order("1001").status == OrderStatus.COMPLETED
        assert w.adapter.polled == []
        assert w.adapter.cancelled == []
        assert _refund_count(w) == 0
