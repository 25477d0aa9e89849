"""Admin REST API — every endpoint requires role=ADMIN."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sv_admin.application.schemas import ProviderUpdateRequest
from src.sv_admin.application.service import AdminService
from src.sv_common.database import get_db_session
from src.sv_common.money import money_to_display
from src.sv_common.response import ApiResponse, success_response
from src.sv_gateway.api.state import (
    get_health_monitor,
    get_orchestrator,
    get_pricing_service,
    get_registry,
)
from src.sv_gateway.auth.dependencies import Principal, require_admin
from src.sv_order.application.orchestrator import OrderOrchestrator
from src.sv_order.application.schemas import OrderItem
from src.sv_pricing.application.schemas import (
    PricingRuleCreateRequest,
    PricingRuleUpdateRequest,
)
from src.sv_pricing.application.service import PricingApplicationService
from src.sv_provider.application.health import ProviderHealthMonitor
from src.sv_provider.application.registry import ProviderRegistry
from src.sv_wallet.application.schemas import AdjustBalanceRequest, DepositRequest
from src.sv_wallet.application.service import WalletApplicationService

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()
_wallet = WalletApplicationService()

Admin = Annotated[Principal, Depends(require_admin)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Orchestrator = Annotated[OrderOrchestrator, Depends(get_orchestrator)]
Pricing = Annotated[PricingApplicationService, Depends(get_pricing_service)]
Registry = Annotated[ProviderRegistry, Depends(get_registry)]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.post("/users/{user_id}/adjust-balance")
async def adjust_balance(
    user_id: str, body: AdjustBalanceRequest, admin: Admin, db: Db
) -> ApiResponse:
    tx = await _wallet.adjust_balance(db, user_id, body.amount, body.reason, admin.user_id)
    return success_response(tx.model_dump(mode="json"))


@router.post("/users/{user_id}/deposits")
async def credit_deposit(
    user_id: str, body: DepositRequest, admin: Admin, db: Db
) -> ApiResponse:
    """Credit a verified payment; replaying the same reference returns the first credit."""
    tx = await _wallet.credit_deposit(db, user_id, body.amount, body.reference)
    return success_response(tx.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@router.get("/orders/stats")
async def order_stats(admin: Admin, db: Db) -> ApiResponse:
    stats = await _service.order_stats(db)
    return success_response(stats.model_dump(mode="json"))


@router.post("/orders/expire-overdue")
async def expire_overdue(
    admin: Admin,
    db: Db,
    orchestrator: Orchestrator,
    limit: int = Query(settings.EXPIRY_SWEEP_BATCH_SIZE, ge=1, le=1000),
) -> ApiResponse:
    result = await orchestrator.expire_overdue_orders(db, limit)
    return success_response(result.model_dump())


@router.get("/orders/{order_id}")
async def get_order(
    order_id: str, admin: Admin, db: Db, orchestrator: Orchestrator
) -> ApiResponse:
    view = await orchestrator.get_order_status(db, order_id)
    return success_response(view.model_dump(mode="json"))


@router.post("/orders/{order_id}/refund")
async def refund_order(
    order_id: str, admin: Admin, db: Db, orchestrator: Orchestrator
) -> ApiResponse:
    result = await _service.refund_order(db, orchestrator, order_id, admin.user_id)
    return success_response(result.model_dump(mode="json"))


@router.post("/orders/{order_id}/cancel")
async def cancel_order(
    order_id: str, admin: Admin, db: Db, orchestrator: Orchestrator
) -> ApiResponse:
    order = await orchestrator.cancel_order(db, order_id)
    item = OrderItem.from_domain(order, money_to_display(order.final_price, order.currency))
    return success_response(item.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Pricing rules
# ---------------------------------------------------------------------------


@router.get("/pricing-rules")
async def list_pricing_rules(admin: Admin, db: Db, pricing: Pricing) -> ApiResponse:
    rules = await pricing.list_rules(db)
    return success_response([r.model_dump(mode="json") for r in rules])


@router.post("/pricing-rules", status_code=201)
async def create_pricing_rule(
    body: PricingRuleCreateRequest, admin: Admin, db: Db, pricing: Pricing
) -> ApiResponse:
    rule = await pricing.create_rule(db, body)
    return success_response(rule.model_dump(mode="json"))


@router.get("/pricing-rules/{rule_id}")
async def get_pricing_rule(rule_id: str, admin: Admin, db: Db, pricing: Pricing) -> ApiResponse:
    rule = await pricing.get_rule(db, rule_id)
    return success_response(rule.model_dump(mode="json"))


@router.patch("/pricing-rules/{rule_id}")
async def update_pricing_rule(
    rule_id: str, body: PricingRuleUpdateRequest, admin: Admin, db: Db, pricing: Pricing
) -> ApiResponse:
    rule = await pricing.update_rule(db, rule_id, body)
    return success_response(rule.model_dump(mode="json"))


@router.delete("/pricing-rules/{rule_id}")
async def delete_pricing_rule(
    rule_id: str, admin: Admin, db: Db, pricing: Pricing
) -> ApiResponse:
    await pricing.delete_rule(db, rule_id)
    return success_response({"id": rule_id, "deleted": True})


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


@router.get("/providers")
async def list_providers(admin: Admin, db: Db, registry: Registry) -> ApiResponse:
    providers = await _service.list_providers(db, registry)
    return success_response([p.model_dump(mode="json") for p in providers])


@router.patch("/providers/{provider_id}")
async def update_provider(
    provider_id: str, body: ProviderUpdateRequest, admin: Admin, db: Db, registry: Registry
) -> ApiResponse:
    provider = await _service.update_provider(db, registry, provider_id, body, admin.user_id)
    return success_response(provider.model_dump(mode="json"))


@router.post("/providers/health-check")
async def run_health_check(
    admin: Admin,
    db: Db,
    monitor: Annotated[ProviderHealthMonitor, Depends(get_health_monitor)],
) -> ApiResponse:
    results = await monitor.check_all(db)
    return success_response({name: status.value for name, status in results.items()})
