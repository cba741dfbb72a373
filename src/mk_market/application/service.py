"""MarketApplicationService — market reads, admin CRUD and status overrides.

Every public method takes `now` explicitly when the answer depends on time;
routers pass utc_now(), tests pass a fixed instant.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.enums import MarketPhase
from src.mk_common.errors import (
    InvalidMarketConfigError,
    MarketHasBetsError,
    MarketNameExistsError,
    MarketNotFoundError,
    ResultAlreadyDeclaredError,
    ResultNotDeclaredError,
)
from src.mk_common.id_generator import generate_id
from src.mk_market.application.schemas import (
    MarketCreateRequest,
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    MarketStatusResponse,
    MarketUpdateRequest,
    PendingResultItem,
    PendingResultsResponse,
)
from src.mk_market.domain.lifecycle import (
    auto_declare_at,
    compute_phase,
    current_cycle_date,
    is_accepting_bets,
    market_schedule,
    resolve_utc_instants,
    time_remaining,
)
from src.mk_market.domain.models import Market
from src.mk_market.domain.repository import MarketRepositoryProtocol
from src.mk_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


def _validate_limits(min_bet: int, max_bet: int) -> None:
    if min_bet > max_bet:
        raise InvalidMarketConfigError("min bet must not exceed max bet")
    if min_bet > settings.MAX_MIN_BET_PAISE:
        raise InvalidMarketConfigError(
            f"min bet must not exceed {settings.MAX_MIN_BET_PAISE} paise"
        )


class MarketApplicationService:
    def __init__(self, repo: MarketRepositoryProtocol | None = None) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()

    async def _require(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._repo.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_markets(
        self, db: AsyncSession, now: datetime, include_inactive: bool = False
    ) -> MarketListResponse:
        markets = await self._repo.list_markets(db, include_inactive)
        items = []
        for m in markets:
            phase = compute_phase(m, now)
            items.append(
                MarketListItem(
                    id=m.id,
                    name=m.name,
                    market_type=m.market_type,
                    start_time=m.start_time,
                    end_time=m.end_time,
                    result_time=m.result_time,
                    phase=phase,
                    accepting_bets=is_accepting_bets(m, now, phase),
                    time_remaining=time_remaining(m, now, phase),
                    declared_result=m.declared_result,
                )
            )
        return MarketListResponse(items=items)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        return MarketDetail.from_domain(await self._require(db, market_id))

    async def get_market_status(
        self, db: AsyncSession, market_id: str, now: datetime
    ) -> MarketStatusResponse:
        market = await self._require(db, market_id)
        phase = compute_phase(market, now)
        return MarketStatusResponse(
            market_id=market.id,
            name=market.name,
            phase=phase,
            persisted_status=market.current_status,
            forced_status=market.forced_status,
            accepting_bets=is_accepting_bets(market, now, phase),
            time_remaining=time_remaining(market, now, phase),
            cycle_date=market.cycle_date,
            end_at_utc=market.end_at_utc.isoformat() if market.end_at_utc else None,
            declared_result=market.declared_result,
        )

    async def list_pending_results(
        self, db: AsyncSession, now: datetime, delay: timedelta
    ) -> PendingResultsResponse:
        items = []
        for m in await self._repo.list_awaiting_result(db):
            due = auto_declare_at(m, delay)
            hours_remaining = None
            if due is not None:
                hours_remaining = round(max((due - now).total_seconds(), 0) / 3600, 2)
            items.append(
                PendingResultItem(
                    market_id=m.id,
                    name=m.name,
                    end_at_utc=m.end_at_utc.isoformat() if m.end_at_utc else None,
                    auto_result_at=due.isoformat() if due else None,
                    hours_remaining=hours_remaining,
                    is_overdue=due is not None and now >= due,
                )
            )
        return PendingResultsResponse(
            items=items, auto_result_enabled=settings.AUTO_RESULT_ENABLED
        )

    # ------------------------------------------------------------------
    # Admin writes
    # ------------------------------------------------------------------

    async def create_market(
        self, db: AsyncSession, req: MarketCreateRequest, created_by: str, now: datetime
    ) -> MarketDetail:
        _validate_limits(req.min_bet_paise, req.max_bet_paise)
        draft = Market(
            id=generate_id(),
            name=req.name.strip(),
            market_type=req.market_type.value,
            is_active=req.is_active,
            start_time=req.start_time,
            end_time=req.end_time,
            result_time=req.result_time,
            timezone=req.timezone,
            current_status=MarketPhase.WAITING.value,
            accepting_bets=True,
            min_bet=req.min_bet_paise,
            max_bet=req.max_bet_paise,
            jodi_multiplier=req.jodi_multiplier,
            haruf_multiplier=req.haruf_multiplier,
            crossing_multiplier=req.crossing_multiplier,
            crossing_rule=req.crossing_rule.value,
            last_status_change=now,
            created_by=created_by,
        )
        market_schedule(draft)  # rejects malformed HH:MM before touching the DB
        instants = resolve_utc_instants(draft, current_cycle_date(draft, now))
        draft.cycle_date = instants.cycle_date
        draft.start_at_utc = instants.start_at_utc
        draft.end_at_utc = instants.end_at_utc
        draft.result_at_utc = instants.result_at_utc

        try:
            if await self._repo.get_market_by_name(db, draft.name) is not None:
                raise MarketNameExistsError(draft.name)
            market = await self._repo.create_market(db, draft)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market %s (%s) created by %s", market.name, market.id, created_by)
        return MarketDetail.from_domain(market)

    async def update_market(
        self, db: AsyncSession, market_id: str, req: MarketUpdateRequest, now: datetime
    ) -> MarketDetail:
        try:
            market = await self._require(db, market_id)
            changes = req.model_dump(exclude_none=True)
            fields: dict[str, Any] = {}
            for key, value in changes.items():
                column = {"min_bet_paise": "min_bet", "max_bet_paise": "max_bet"}.get(key, key)
                fields[column] = getattr(value, "value", value)

            _validate_limits(
                fields.get("min_bet", market.min_bet), fields.get("max_bet", market.max_bet)
            )
            if "name" in fields and fields["name"] != market.name:
                if await self._repo.get_market_by_name(db, fields["name"]) is not None:
                    raise MarketNameExistsError(fields["name"])

            schedule_keys = {"start_time", "end_time", "result_time", "timezone"}
            if schedule_keys & fields.keys() and not market.has_declared_result:
                # Re-anchor the open cycle on the new wall-clock schedule
                for key in schedule_keys & fields.keys():
                    setattr(market, key, fields[key])
                cycle = market.cycle_date or current_cycle_date(market, now)
                instants = resolve_utc_instants(market, cycle)
                fields.update(
                    start_at_utc=instants.start_at_utc,
                    end_at_utc=instants.end_at_utc,
                    result_at_utc=instants.result_at_utc,
                    cycle_date=instants.cycle_date,
                )

            updated = await self._repo.update_market(db, market_id, fields)
            if updated is None:
                raise MarketNotFoundError(market_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return MarketDetail.from_domain(updated)

    async def delete_market(self, db: AsyncSession, market_id: str) -> dict[str, str]:
        try:
            await self._require(db, market_id)
            bets = await self._repo.count_bets(db, market_id)
            if bets:
                raise MarketHasBetsError(market_id, bets)
            if not await self._repo.delete_market(db, market_id):
                # a bet slipped in between the count and the guarded delete
                raise MarketHasBetsError(market_id, await self._repo.count_bets(db, market_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market %s deleted", market_id)
        return {"market_id": market_id, "deleted": "true"}

    async def force_status(
        self,
        db: AsyncSession,
        market_id: str,
        status: MarketPhase | None,
        now: datetime,
        admin_id: str,
    ) -> MarketDetail:
        reopen = status is MarketPhase.OPEN
        try:
            current = await self._require(db, market_id)
            if reopen and current.has_declared_result:
                # Roll the market over first; bets placed now would carry a
                # cycle that has already been settled.
                raise ResultAlreadyDeclaredError(market_id)
            market = await self._repo.force_status(
                db, market_id, status.value if status else None, now
            )
            if market is None:
                if reopen:
                    raise ResultAlreadyDeclaredError(market_id)
                raise MarketNotFoundError(market_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning(
            "Market %s status forced to %s by %s",
            market_id, status.value if status else "<cleared>", admin_id,
        )
        return MarketDetail.from_domain(market)

    async def open_next_cycle(
        self,
        db: AsyncSession,
        market_id: str,
        now: datetime,
        cycle_date: date | None = None,
    ) -> MarketDetail:
        """Roll a declared market over to its next cycle and reopen acceptance."""
        try:
            market = await self._require(db, market_id)
            if not market.has_declared_result:
                raise ResultNotDeclaredError(market_id)
            target = cycle_date or current_cycle_date(market, now)
            if market.cycle_date is not None and target <= market.cycle_date:
                target = market.cycle_date + timedelta(days=1)
            instants = resolve_utc_instants(market, target)
            rolled = await self._repo.open_next_cycle(db, market_id, instants, now)
            if rolled is None:
                raise ResultNotDeclaredError(market_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market %s rolled over to cycle %s", market_id, target)
        return MarketDetail.from_domain(rolled)
