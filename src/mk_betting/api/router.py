"""mk_betting REST API.

POST /bets            — place a jodi / haruf / crossing bet
GET  /bets            — the caller's bet history
GET  /bets/{bet_id}   — one of the caller's bets
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_betting.application.schemas import PlaceBetRequest
from src.mk_betting.application.service import BettingService
from src.mk_common.database import get_db_session
from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import BetStatus
from src.mk_common.response import ApiResponse, success_response
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel

router = APIRouter(prefix="/bets", tags=["bets"])

_service = BettingService()


@router.post("")
async def place_bet(
    body: PlaceBetRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.place_bet(db, str(current_user.id), body, utc_now())
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def list_bets(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    market_id: str | None = Query(None),
    status: BetStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _service.list_bets(
        db, str(current_user.id), market_id, status.value if status else None, limit
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{bet_id}")
async def get_bet(
    bet_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_bet(db, str(current_user.id), bet_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
