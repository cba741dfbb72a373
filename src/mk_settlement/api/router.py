"""Public result board.

GET /results?date=YYYY-MM-DD              — results of every market for one cycle date
GET /results/history?days=N               — last N cycle dates (max 30), grouped by date
GET /results/markets/{market_id}/latest   — most recent declared result of one market

No authentication: these are the numbers shown on the public chart pages.
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.datetime_utils import to_local, utc_now
from src.mk_common.response import ApiResponse, success_response
from src.mk_settlement.application.service import SettlementService

router = APIRouter(prefix="/results", tags=["results"])

_service = SettlementService()

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _market_today() -> date:
    return to_local(utc_now()).date()


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def results_for_date(
    request: Request,
    db: DbSession,
    day: date | None = Query(None, alias="date", description="Cycle date, defaults to today"),
) -> ApiResponse:
    result = await _service.results_for_date(db, day or _market_today())
    return _respond(request, result.model_dump(mode="json"))


@router.get("/history")
async def results_history(
    request: Request,
    db: DbSession,
    days: int = Query(7, ge=1, description="Number of days, capped at 30"),
) -> ApiResponse:
    result = await _service.results_history(db, days, _market_today())
    return _respond(request, result.model_dump(mode="json"))


@router.get("/markets/{market_id}/latest")
async def latest_result(market_id: str, request: Request, db: DbSession) -> ApiResponse:
    result = await _service.latest_result(db, market_id)
    return _respond(request, result.model_dump(mode="json"))
