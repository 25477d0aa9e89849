"""sv_order REST API — quote, service catalog, create, list, status, cancel. All require JWT."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.database import get_db_session
from src.sv_common.money import money_to_display
from src.sv_gateway.api.state import get_orchestrator, get_pricing_service
from src.sv_gateway.auth.dependencies import get_current_user_id
from src.sv_order.application.orchestrator import OrderOrchestrator
from src.sv_order.application.schemas import (
    CreateOrderRequest,
    OrderItem,
    OrderListResponse,
    OrderStatusView,
)
from src.sv_pricing.application.schemas import QuoteResponse, ServiceCatalogResponse
from src.sv_pricing.application.service import PricingApplicationService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/quote", response_model=QuoteResponse)
async def quote_price(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    pricing: Annotated[PricingApplicationService, Depends(get_pricing_service)],
    service_code: str = Query(..., min_length=1, max_length=64),
    country: str = Query(..., min_length=2, max_length=2),
    preferred_provider: str | None = Query(None, max_length=64),
) -> QuoteResponse:
    return await pricing.quote(
        db, service_code.strip().lower(), country.strip().upper(), preferred_provider
    )


@router.get("/services", response_model=ServiceCatalogResponse)
async def list_services(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    pricing: Annotated[PricingApplicationService, Depends(get_pricing_service)],
    country: str | None = Query(None, min_length=2, max_length=2),
) -> ServiceCatalogResponse:
    return await pricing.list_services(db, country.strip().upper() if country else None)


@router.post("", response_model=OrderItem, status_code=201)
async def create_order(
    req: CreateOrderRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[OrderOrchestrator, Depends(get_orchestrator)],
) -> OrderItem:
    order = await orchestrator.create_order(
        db, user_id, req.service_code, req.country, req.preferred_provider
    )
    return OrderItem.from_domain(order, money_to_display(order.final_price, order.currency))


@router.get("", response_model=OrderListResponse)
async def list_orders(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[OrderOrchestrator, Depends(get_orchestrator)],
    status: str | None = Query(None, description="Filter by order status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
) -> OrderListResponse:
    return await orchestrator.list_orders(db, user_id, status, limit, cursor)


@router.get("/{order_id}", response_model=OrderStatusView)
async def get_order(
    order_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[OrderOrchestrator, Depends(get_orchestrator)],
) -> OrderStatusView:
    return await orchestrator.refresh_and_get_status(db, order_id, user_id)


@router.post("/{order_id}/cancel", response_model=OrderItem)
async def cancel_order(
    order_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[OrderOrchestrator, Depends(get_orchestrator)],
) -> OrderItem:
    order = await orchestrator.cancel_order(db, order_id, user_id)
    return OrderItem.from_domain(order, money_to_display(order.final_price, order.currency))
