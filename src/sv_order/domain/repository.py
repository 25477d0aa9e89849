"""Repository Protocol for orders."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import OrderStatus
from src.sv_order.domain.models import Order, StatusCount


class OrderRepositoryProtocol(Protocol):
    async def insert_order(self, db: AsyncSession, order: Order) -> Order: ...

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def get_order_for_update(self, db: AsyncSession, order_id: str) -> Order | None:
        """SELECT ... FOR UPDATE; the lock lasts until the caller commits."""
        ...

    async def mark_reserved(
        self,
        db: AsyncSession,
        order_id: str,
        external_id: str,
        phone_number: str,
        provider_cost: Decimal | None,
    ) -> Order | None:
        """PENDING/PROCESSING -> WAITING_FOR_SMS. None if the order moved on meanwhile."""
        ...

    async def complete_with_code(
        self, db: AsyncSession, order_id: str, sms_code: str, sms_message: str | None
    ) -> Order | None:
        """WAITING_FOR_SMS -> COMPLETED. None if the order is no longer waiting."""
        ...

    async def set_status(
        self,
        db: AsyncSession,
        order_id: str,
        status: OrderStatus,
        cancel_reason: str | None,
    ) -> Order: ...

    async def list_orders(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]: ...

    async def list_overdue_orders(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[Order]: ...

    async def count_by_status(self, db: AsyncSession) -> list[StatusCount]: ...
