"""OrderRepository — concrete implementation of OrderRepositoryProtocol.

Status transitions out of the orchestrator's happy path are guarded in SQL
(``WHERE status = ...``) so a late provider callback can never overwrite a
terminal order. Transaction ownership: the CALLER commits.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import OrderStatus
from src.sv_common.errors import InternalError, OrderNotFoundError
from src.sv_order.domain.models import Order, StatusCount

_ORDER_COLUMNS = """
    id, order_number, user_id, provider_id, service_code, country,
    base_cost, profit, final_price, currency, status, external_id,
    phone_number, sms_code, sms_message, provider_cost, cancel_reason,
    expires_at, transaction_id, created_at, updated_at
"""

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO orders
        (id, order_number, user_id, provider_id, service_code, country,
         base_cost, profit, final_price, currency, status, expires_at, transaction_id)
    VALUES
        (:id, :order_number, :user_id, :provider_id, :service_code, :country,
         :base_cost, :profit, :final_price, :currency, :status, :expires_at, :transaction_id)
    RETURNING {_ORDER_COLUMNS}
""")

_GET_ORDER_SQL = text(f"""
    SELECT {_ORDER_COLUMNS} FROM orders WHERE id = :id
""")

_GET_ORDER_FOR_UPDATE_SQL = text(f"""
    SELECT {_ORDER_COLUMNS} FROM orders WHERE id = :id FOR UPDATE
""")

_MARK_RESERVED_SQL = text(f"""
    UPDATE orders
    SET status = 'WAITING_FOR_SMS',
        external_id = :external_id,
        phone_number = :phone_number,
        provider_cost = :provider_cost
    WHERE id = :id AND status IN ('PENDING', 'PROCESSING')
    RETURNING {_ORDER_COLUMNS}
""")

_COMPLETE_WITH_CODE_SQL = text(f"""
    UPDATE orders
    SET status = 'COMPLETED',
        sms_code = :sms_code,
        sms_message = :sms_message
    WHERE id = :id AND status = 'WAITING_FOR_SMS'
    RETURNING {_ORDER_COLUMNS}
""")

_SET_STATUS_SQL = text(f"""
    UPDATE orders
    SET status = :status,
        cancel_reason = COALESCE(:cancel_reason, cancel_reason)
    WHERE id = :id
    RETURNING {_ORDER_COLUMNS}
""")

# Keyset pagination on (created_at, id), newest first
_LIST_ORDERS_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders o
    WHERE o.user_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR o.status = CAST(:status AS TEXT))
      AND (
        CAST(:cursor_id AS TEXT) IS NULL
        OR (o.created_at, o.id) < (
            SELECT c.created_at, c.id FROM orders c WHERE c.id = :cursor_id
        )
      )
    ORDER BY o.created_at DESC, o.id DESC
    LIMIT :limit
""")

_LIST_OVERDUE_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    WHERE status IN ('PENDING', 'PROCESSING', 'WAITING_FOR_SMS')
      AND expires_at <= :now
    ORDER BY expires_at ASC
    LIMIT :limit
""")

_COUNT_BY_STATUS_SQL = text("""
    SELECT status,
           COUNT(*) AS order_count,
           COALESCE(SUM(final_price), 0) AS final_price_sum,
           COALESCE(SUM(profit), 0) AS profit_sum
    FROM orders
    GROUP BY status
""")


def _row_to_order(row: object) -> Order:
    provider_cost = row.provider_cost  # type: ignore[attr-defined]
    return Order(
        id=row.id,  # type: ignore[attr-defined]
        order_number=row.order_number,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        provider_id=row.provider_id,  # type: ignore[attr-defined]
        service_code=row.service_code,  # type: ignore[attr-defined]
        country=row.country,  # type: ignore[attr-defined]
        base_cost=Decimal(row.base_cost),  # type: ignore[attr-defined]
        profit=Decimal(row.profit),  # type: ignore[attr-defined]
        final_price=Decimal(row.final_price),  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        status=OrderStatus(row.status),  # type: ignore[attr-defined]
        external_id=row.external_id,  # type: ignore[attr-defined]
        phone_number=row.phone_number,  # type: ignore[attr-defined]
        sms_code=row.sms_code,  # type: ignore[attr-defined]
        sms_message=row.sms_message,  # type: ignore[attr-defined]
        provider_cost=Decimal(provider_cost) if provider_cost is not None else None,
        cancel_reason=row.cancel_reason,  # type: ignore[attr-defined]
        expires_at=row.expires_at,  # type: ignore[attr-defined]
        transaction_id=row.transaction_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class OrderRepository:
    async def insert_order(self, db: AsyncSession, order: Order) -> Order:
        result = await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "order_number": order.order_number,
                "user_id": order.user_id,
                "provider_id": order.provider_id,
                "service_code": order.service_code,
                "country": order.country,
                "base_cost": order.base_cost,
                "profit": order.profit,
                "final_price": order.final_price,
                "currency": order.currency,
                "status": order.status.value,
                "expires_at": order.expires_at,
                "transaction_id": order.transaction_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Order insert returned no rows — this should never happen")
        return _row_to_order(row)

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def get_order_for_update(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_FOR_UPDATE_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def mark_reserved(
        self,
        db: AsyncSession,
        order_id: str,
        external_id: str,
        phone_number: str,
        provider_cost: Decimal | None,
    ) -> Order | None:
        result = await db.execute(
            _MARK_RESERVED_SQL,
            {
                "id": order_id,
                "external_id": external_id,
                "phone_number": phone_number,
                "provider_cost": provider_cost,
            },
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def complete_with_code(
        self, db: AsyncSession, order_id: str, sms_code: str, sms_message: str | None
    ) -> Order | None:
        result = await db.execute(
            _COMPLETE_WITH_CODE_SQL,
            {"id": order_id, "sms_code": sms_code, "sms_message": sms_message},
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def set_status(
        self,
        db: AsyncSession,
        order_id: str,
        status: OrderStatus,
        cancel_reason: str | None,
    ) -> Order:
        result = await db.execute(
            _SET_STATUS_SQL,
            {"id": order_id, "status": status.value, "cancel_reason": cancel_reason},
        )
        row = result.fetchone()
        if row is None:
            raise OrderNotFoundError(order_id)
        return _row_to_order(row)

    async def list_orders(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_ORDERS_SQL,
            {"user_id": user_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_overdue_orders(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[Order]:
        result = await db.execute(_LIST_OVERDUE_SQL, {"now": now, "limit": limit})
        return [_row_to_order(row) for row in result.fetchall()]

    async def count_by_status(self, db: AsyncSession) -> list[StatusCount]:
        result = await db.execute(_COUNT_BY_STATUS_SQL)
        return [
            StatusCount(
                status=OrderStatus(row.status),
                count=row.order_count,
                final_price_sum=Decimal(row.final_price_sum),
                profit_sum=Decimal(row.profit_sum),
            )
            for row in result.fetchall()
        ]
