"""Admin REST API. Every route requires an admin user.

POST   /admin/markets                          — create market
PATCH  /admin/markets/{id}                     — update market
DELETE /admin/markets/{id}                     — delete (no bets on record)
POST   /admin/markets/{id}/force-status        — set or clear a status override
POST   /admin/markets/{id}/close               — manual close
POST   /admin/markets/{id}/next-cycle          — roll a declared market over
POST   /admin/markets/{id}/declare             — declare result (market must be CLOSED)
POST   /admin/markets/{id}/declare-override    — declare result, any phase
POST   /admin/markets/{id}/reconcile           — retry bets left PENDING
GET    /admin/markets/{id}/results             — declaration history
GET    /admin/markets/pending-results          — CLOSED markets awaiting a result
GET    /admin/auto-close/status
POST   /admin/auto-close/trigger
POST   /admin/wallets/{user_id}/adjust         — manual balance adjustment
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_admin.application.service import AdminService
from src.mk_common.database import get_db_session
from src.mk_common.datetime_utils import utc_now
from src.mk_common.errors import InternalError
from src.mk_common.response import ApiResponse, success_response
from src.mk_gateway.auth.dependencies import require_admin
from src.mk_gateway.user.db_models import UserModel
from src.mk_market.application.schemas import (
    ForceStatusRequest,
    MarketCreateRequest,
    MarketUpdateRequest,
    NextCycleRequest,
)
from src.mk_scheduler.sweeper import AutoCloseSweeper
from src.mk_settlement.application.schemas import DeclareResultRequest
from src.mk_wallet.application.schemas import AdjustBalanceRequest

router = APIRouter(prefix="/admin", tags=["admin"])

_service = AdminService()


def get_auto_close_sweeper(request: Request) -> AutoCloseSweeper:
    sweeper = getattr(request.app.state, "auto_close_sweeper", None)
    if sweeper is None:
        raise InternalError("Auto-close sweeper is not configured")
    return sweeper


AdminUser = Annotated[UserModel, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Sweeper = Annotated[AutoCloseSweeper, Depends(get_auto_close_sweeper)]


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


# ---------------------------------------------------------------------------
# Markets
# ---------------------------------------------------------------------------


@router.post("/markets", status_code=201)
async def create_market(
    body: MarketCreateRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _service.create_market(db, body, str(admin.id), utc_now())
    return _respond(request, result.model_dump(mode="json"))


@router.get("/markets/pending-results")
async def pending_results(request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    result = await _service.pending_results(db, utc_now())
    return _respond(request, result.model_dump(mode="json"))


@router.patch("/markets/{market_id}")
async def update_market(
    market_id: str, body: MarketUpdateRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _service.update_market(db, market_id, body, utc_now())
    return _respond(request, result.model_dump(mode="json"))


@router.delete("/markets/{market_id}")
async def delete_market(
    market_id: str, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    return _respond(request, await _service.delete_market(db, market_id))


@router.post("/markets/{market_id}/force-status")
async def force_status(
    market_id: str, body: ForceStatusRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _service.force_status(db, market_id, body.status, str(admin.id), utc_now())
    return _respond(request, result.model_dump(mode="json"))


@router.post("/markets/{market_id}/close")
async def force_close(
    market_id: str, request: Request, admin: AdminUser, db: DbSession, sweeper: Sweeper
) -> ApiResponse:
    result = await _service.force_close(db, sweeper, market_id, str(admin.id))
    return _respond(request, result.model_dump(mode="json"))


@router.post("/markets/{market_id}/next-cycle")
async def next_cycle(
    market_id: str, request: Request, admin: AdminUser, db: DbSession,
    body: NextCycleRequest | None = None,
) -> ApiResponse:
    cycle_date = body.cycle_date if body else None
    result = await _service.open_next_cycle(db, market_id, utc_now(), cycle_date)
    return _respond(request, result.model_dump(mode="json"))


@router.post("/markets/{market_id}/declare")
async def declare_result(
    market_id: str, body: DeclareResultRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _service.declare_result(db, market_id, body, str(admin.id), utc_now())
    return _respond(request, result.model_dump(mode="json"))


@router.post("/markets/{market_id}/declare-override")
async def declare_result_override(
    market_id: str, body: DeclareResultRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _service.declare_result(
        db, market_id, body, str(admin.id), utc_now(), override=True
    )
    return _respond(request, result.model_dump(mode="json"))


@router.post("/markets/{market_id}/reconcile")
async def reconcile(
    market_id: str, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _service.reconcile(db, market_id, utc_now())
    return _respond(request, result.model_dump())


@router.get("/markets/{market_id}/results")
async def result_history(
    market_id: str, request: Request, admin: AdminUser, db: DbSession,
    limit: int = Query(30, ge=1, le=200),
) -> ApiResponse:
    items = await _service.result_history(db, market_id, limit)
    return _respond(request, {"items": [i.model_dump(mode="json") for i in items]})


# ---------------------------------------------------------------------------
# Auto-close
# ---------------------------------------------------------------------------


@router.get("/auto-close/status")
async def auto_close_status(request: Request, admin: AdminUser, sweeper: Sweeper) -> ApiResponse:
    return _respond(request, sweeper.status())


@router.post("/auto-close/trigger")
async def auto_close_trigger(request: Request, admin: AdminUser, sweeper: Sweeper) -> ApiResponse:
    return _respond(request, await _service.trigger_auto_close(sweeper, str(admin.id)))


# ---------------------------------------------------------------------------
# Wallets
# ---------------------------------------------------------------------------


@router.post("/wallets/{user_id}/adjust")
async def adjust_wallet(
    user_id: str, body: AdjustBalanceRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _service.adjust_wallet(db, user_id, body, str(admin.id))
    return _respond(request, result.model_dump())
