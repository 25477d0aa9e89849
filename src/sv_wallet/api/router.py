"""sv_wallet REST API — balance and history of the authenticated user."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.database import get_db_session
from src.sv_common.response import ApiResponse, success_response
from src.sv_gateway.auth.dependencies import get_current_user_id
from src.sv_wallet.application.service import WalletApplicationService

router = APIRouter(prefix="/wallet", tags=["wallet"])

_service = WalletApplicationService()


@router.get("/balance")
async def get_balance(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, user_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/transactions")
async def list_transactions(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    type: str | None = Query(None, description="Filter by TransactionType"),
) -> ApiResponse:
    data = await _service.list_transactions(db, user_id, cursor, limit, type)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
