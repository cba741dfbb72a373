"""SettlementService — result declaration, payout and reconciliation.

declare_result runs as one DB transaction:

    validate -> claim the declaration on the market row (guarded UPDATE)
             -> settle every pending bet of the cycle (savepoint per bet)
             -> write the result summary -> commit

The guarded claim is what makes a second declaration, concurrent or
sequential, fail with ResultAlreadyDeclaredError instead of paying twice.
"""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_betting.domain.repository import BetRepositoryProtocol
from src.mk_betting.infrastructure.persistence import BetRepository
from src.mk_common.enums import DeclarationMethod, MarketPhase
from src.mk_common.errors import (
    MarketNotClosedError,
    MarketNotFoundError,
    ResultAlreadyDeclaredError,
)
from src.mk_common.id_generator import generate_id
from src.mk_common.paise import paise_to_display
from src.mk_market.domain.models import Market
from src.mk_market.domain.repository import MarketRepositoryProtocol
from src.mk_market.infrastructure.persistence import MarketRepository
from src.mk_settlement.application.schemas import (
    DeclareResultRequest,
    DeclareResultResponse,
    MarketLatestResultResponse,
    PublishedResultItem,
    ReconcileResponse,
    ResultBoardResponse,
    ResultHistoryDay,
    ResultHistoryResponse,
    ResultSummaryItem,
)
from src.mk_settlement.domain.declared_result import resolve_declared_result
from src.mk_settlement.domain.engine import SettlementEngine
from src.mk_settlement.domain.models import ResultSummary, aggregate_outcomes
from src.mk_settlement.domain.repository import ResultSummaryRepositoryProtocol
from src.mk_settlement.infrastructure.results_repository import ResultSummaryRepository

logger = logging.getLogger(__name__)

MAX_HISTORY_DAYS = 30


class SettlementService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        summary_repo: ResultSummaryRepositoryProtocol | None = None,
        engine: SettlementEngine | None = None,
    ) -> None:
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._bet_repo: BetRepositoryProtocol = bet_repo or BetRepository()
        self._summary_repo: ResultSummaryRepositoryProtocol = (
            summary_repo or ResultSummaryRepository()
        )
        self._engine = engine or SettlementEngine(bet_repo=self._bet_repo)

    async def _require_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._market_repo.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def declare_result(
        self,
        db: AsyncSession,
        market_id: str,
        req: DeclareResultRequest,
        declared_by: str,
        now: datetime,
        *,
        enforce_closed: bool = True,
        method: DeclarationMethod = DeclarationMethod.MANUAL,
    ) -> DeclareResultResponse:
        """Declare a result and settle the market's pending bets.

        Raises:
            MarketNotFoundError: unknown market.
            ResultAlreadyDeclaredError: a result exists for this cycle (also
                when another declaration wins the race).
            MarketNotClosedError: strict mode and the market is not CLOSED.
            InvalidResultError: no value supplied, or not two digits.
        """
        result = resolve_declared_result(req.jodi, req.haruf, req.crossing)
        try:
            market = await self._require_market(db, market_id)
            if market.has_declared_result:
                raise ResultAlreadyDeclaredError(market_id)
            if enforce_closed and market.current_status != MarketPhase.CLOSED:
                raise MarketNotClosedError(market_id, market.current_status)

            claimed = await self._market_repo.claim_declaration(
                db,
                market_id,
                {
                    "declared_result": result.canonical,
                    "jodi": result.jodi,
                    "haruf": result.haruf,
                    "crossing": result.crossing,
                },
                declared_by,
                method.value,
                now,
                enforce_closed,
            )
            if claimed is None:
                raise ResultAlreadyDeclaredError(market_id)

            bets = await self._bet_repo.list_pending_bets(db, market_id, market.cycle_date)
            outcomes = await self._engine.settle_bets(db, claimed, bets, result, now)

            summary = aggregate_outcomes(
                ResultSummary(
                    id=generate_id(),
                    market_id=market_id,
                    cycle_date=market.cycle_date,
                    declared_result=result.canonical,
                    result_jodi=result.jodi,
                    result_haruf=result.haruf,
                    result_crossing=result.crossing,
                    method=method.value,
                    declared_by=declared_by,
                    declared_at=now,
                ),
                outcomes,
            )
            if summary.unsettled_bets == 0:
                summary.processed_at = now
            await self._summary_repo.insert_summary(db, summary)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        log = logger.warning if summary.unsettled_bets else logger.info
        log(
            "Result %s declared for %s (%s, by %s): %d bets, %d won, paid %s, %d unsettled",
            result.canonical, market.name, method.value, declared_by,
            summary.total_bets, summary.winning_bets,
            paise_to_display(summary.total_paid), summary.unsettled_bets,
        )
        return DeclareResultResponse.from_summary(summary, market.name)

    async def declare_result_override(
        self,
        db: AsyncSession,
        market_id: str,
        req: DeclareResultRequest,
        declared_by: str,
        now: datetime,
    ) -> DeclareResultResponse:
        """Administrative declaration that skips the CLOSED check.

        Still refuses a second declaration for the same cycle.
        """
        logger.warning("Override declaration on market %s by %s", market_id, declared_by)
        return await self.declare_result(
            db, market_id, req, declared_by, now, enforce_closed=False
        )

    async def reconcile_market(
        self, db: AsyncSession, market_id: str, now: datetime
    ) -> ReconcileResponse:
        """Retry bets that failed to settle in an earlier declaration."""
        try:
            market = await self._require_market(db, market_id)
            summary = await self._summary_repo.get_unprocessed(db, market_id)
            if summary is None:
                await db.rollback()
                return ReconcileResponse(
                    market_id=market_id, settled_now=0, still_pending=0, processed=True
                )

            result = resolve_declared_result(
                summary.result_jodi, summary.result_haruf, summary.result_crossing
            )
            bets = await self._bet_repo.list_pending_bets(db, market_id, summary.cycle_date)
            outcomes = await self._engine.settle_bets(db, market, bets, result, now)

            summary.unsettled_bets = 0
            aggregate_outcomes(summary, outcomes)
            if summary.unsettled_bets == 0:
                summary.processed_at = now
            await self._summary_repo.update_counters(db, summary)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        settled_now = len(outcomes) - summary.unsettled_bets
        logger.info(
            "Reconciled market %s: %d settled, %d still pending",
            market_id, settled_now, summary.unsettled_bets,
        )
        return ReconcileResponse(
            market_id=market_id,
            settled_now=settled_now,
            still_pending=summary.unsettled_bets,
            processed=summary.processed_at is not None,
        )

    async def list_results(
        self, db: AsyncSession, market_id: str, limit: int = 30
    ) -> list[ResultSummaryItem]:
        await self._require_market(db, market_id)
        summaries = await self._summary_repo.list_for_market(db, market_id, limit)
        return [ResultSummaryItem.from_domain(s) for s in summaries]

    # ------------------------------------------------------------------
    # Public result board
    # ------------------------------------------------------------------

    async def results_for_date(self, db: AsyncSession, cycle_date: date) -> ResultBoardResponse:
        published = await self._summary_repo.list_published(db, cycle_date, cycle_date)
        items = [PublishedResultItem.from_domain(r) for r in published]
        return ResultBoardResponse(cycle_date=cycle_date, results=items, total=len(items))

    async def results_history(
        self, db: AsyncSession, days: int, today: date
    ) -> ResultHistoryResponse:
        """Last `days` cycle dates up to today, newest first; days without results are omitted."""
        days = min(max(days, 1), MAX_HISTORY_DAYS)
        published = await self._summary_repo.list_published(
            db, today - timedelta(days=days - 1), today
        )
        by_day: dict[date, list[PublishedResultItem]] = {}
        for r in published:
            if r.cycle_date is None:
                continue
            by_day.setdefault(r.cycle_date, []).append(PublishedResultItem.from_domain(r))
        history = [
            ResultHistoryDay(cycle_date=day, results=by_day[day])
            for day in sorted(by_day, reverse=True)
        ]
        return ResultHistoryResponse(days=days, history=history, total_days=len(history))

    async def latest_result(self, db: AsyncSession, market_id: str) -> MarketLatestResultResponse:
        market = await self._require_market(db, market_id)
        latest = await self._summary_repo.latest_published(db, market_id)
        return MarketLatestResultResponse(
            market_id=market.id,
            market_name=market.name,
            result_declared=latest is not None,
            result=PublishedResultItem.from_domain(latest) if latest else None,
        )
