"""AdminService — admin-only operations that are not a single orchestrator call."""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_admin.application.schemas import ProviderItem, ProviderUpdateRequest
from src.sv_common.enums import LogLevel, OrderStatus, RefundReason
from src.sv_common.errors import OrderNotFoundError, ProviderNotFoundError
from src.sv_common.system_log import SystemLogRepository
from src.sv_order.application.orchestrator import OrderOrchestrator
from src.sv_order.application.schemas import OrderStatsResponse, RefundResponse
from src.sv_order.domain.repository import OrderRepositoryProtocol
from src.sv_order.infrastructure.persistence import OrderRepository
from src.sv_provider.application.registry import ProviderRegistry

logger = logging.getLogger(__name__)

_REFUNDED_EXITS = frozenset(
    {OrderStatus.CANCELLED, OrderStatus.FAILED, OrderStatus.EXPIRED, OrderStatus.REFUNDED}
)


class AdminService:
    def __init__(
        self,
        order_repo: OrderRepositoryProtocol | None = None,
        log_repo: SystemLogRepository | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._log_repo = log_repo or SystemLogRepository()

    async def refund_order(
        self,
        db: AsyncSession,
        orchestrator: OrderOrchestrator,
        order_id: str,
        admin_id: str,
    ) -> RefundResponse:
        refund = await orchestrator.refund_order(db, order_id, RefundReason.ADMIN, admin_id)
        order = await self._orders.get_order(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return RefundResponse(
            order_id=order_id,
            refunded=refund is not None,
            transaction_id=refund.id if refund else None,
            amount=refund.amount if refund else None,
            status=order.status,
        )

    async def order_stats(self, db: AsyncSession) -> OrderStatsResponse:
        counts = await self._orders.count_by_status(db)
        completed = [c for c in counts if c.status == OrderStatus.COMPLETED]
        return OrderStatsResponse(
            total=sum(c.count for c in counts),
            by_status={c.status.value: c.count for c in counts},
            revenue=sum((c.final_price_sum for c in completed), Decimal("0")),
            profit=sum((c.profit_sum for c in completed), Decimal("0")),
            refunded=sum(
                (c.final_price_sum for c in counts if c.status in _REFUNDED_EXITS),
                Decimal("0"),
            ),
        )

    async def list_providers(
        self, db: AsyncSession, registry: ProviderRegistry
    ) -> list[ProviderItem]:
        providers = await registry.repo.list_providers(db)
        return [
            ProviderItem.from_domain(p, registry.find(p.name) is not None) for p in providers
        ]

    async def update_provider(
        self,
        db: AsyncSession,
        registry: ProviderRegistry,
        provider_id: str,
        body: ProviderUpdateRequest,
        admin_id: str,
    ) -> ProviderItem:
        try:
            updated = await registry.repo.update_provider(
                db, provider_id, body.is_active, body.priority, body.health_status
            )
            if updated is None:
                raise ProviderNotFoundError(provider_id)
            await self._log_repo.write(
                db,
                LogLevel.INFO,
                "admin",
                f"Provider {updated.name} updated",
                {
                    "admin_id": admin_id,
                    "provider_id": provider_id,
                    "changes": body.model_dump(exclude_none=True, mode="json"),
                },
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s updated provider %s", admin_id, provider_id)
        return ProviderItem.from_domain(updated, registry.find(updated.name) is not None)
