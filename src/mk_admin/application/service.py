"""Admin application service.

Thin composition over the market, settlement and wallet services plus the
auto-close sweeper. Every method records the acting admin so the audit
fields (declared_by, manually_closed_by, ADJUSTMENT descriptions) are filled.
"""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.enums import MarketPhase
from src.mk_market.application.schemas import (
    MarketCreateRequest,
    MarketDetail,
    MarketUpdateRequest,
    PendingResultsResponse,
)
from src.mk_market.application.service import MarketApplicationService
from src.mk_scheduler.sweeper import AutoCloseSweeper
from src.mk_settlement.application.schemas import (
    DeclareResultRequest,
    DeclareResultResponse,
    ReconcileResponse,
    ResultSummaryItem,
)
from src.mk_settlement.application.service import SettlementService
from src.mk_wallet.application.schemas import AdjustBalanceRequest, AdjustBalanceResponse
from src.mk_wallet.application.service import WalletApplicationService

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        markets: MarketApplicationService | None = None,
        settlement: SettlementService | None = None,
        wallets: WalletApplicationService | None = None,
    ) -> None:
        self._markets = markets or MarketApplicationService()
        self._settlement = settlement or SettlementService()
        self._wallets = wallets or WalletApplicationService()

    # -- markets -------------------------------------------------------

    async def create_market(
        self, db: AsyncSession, req: MarketCreateRequest, admin_id: str, now: datetime
    ) -> MarketDetail:
        return await self._markets.create_market(db, req, admin_id, now)

    async def update_market(
        self, db: AsyncSession, market_id: str, req: MarketUpdateRequest, now: datetime
    ) -> MarketDetail:
        return await self._markets.update_market(db, market_id, req, now)

    async def delete_market(self, db: AsyncSession, market_id: str) -> dict[str, str]:
        return await self._markets.delete_market(db, market_id)

    async def force_status(
        self,
        db: AsyncSession,
        market_id: str,
        status: MarketPhase | None,
        admin_id: str,
        now: datetime,
    ) -> MarketDetail:
        return await self._markets.force_status(db, market_id, status, now, admin_id)

    async def open_next_cycle(
        self, db: AsyncSession, market_id: str, now: datetime, cycle_date: date | None = None
    ) -> MarketDetail:
        return await self._markets.open_next_cycle(db, market_id, now, cycle_date)

    async def pending_results(self, db: AsyncSession, now: datetime) -> PendingResultsResponse:
        return await self._markets.list_pending_results(
            db, now, timedelta(hours=settings.AUTO_RESULT_DELAY_HOURS)
        )

    # -- results -------------------------------------------------------

    async def declare_result(
        self,
        db: AsyncSession,
        market_id: str,
        req: DeclareResultRequest,
        admin_id: str,
        now: datetime,
        *,
        override: bool = False,
    ) -> DeclareResultResponse:
        if override:
            return await self._settlement.declare_result_override(
                db, market_id, req, admin_id, now
            )
        return await self._settlement.declare_result(db, market_id, req, admin_id, now)

    async def reconcile(
        self, db: AsyncSession, market_id: str, now: datetime
    ) -> ReconcileResponse:
        return await self._settlement.reconcile_market(db, market_id, now)

    async def result_history(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[ResultSummaryItem]:
        return await self._settlement.list_results(db, market_id, limit)

    # -- auto-close ----------------------------------------------------

    async def force_close(
        self, db: AsyncSession, sweeper: AutoCloseSweeper, market_id: str, admin_id: str
    ) -> MarketDetail:
        return await sweeper.force_close(db, market_id, admin_id)

    async def trigger_auto_close(
        self, sweeper: AutoCloseSweeper, admin_id: str
    ) -> dict[str, object]:
        result = await sweeper.sweep_once()
        logger.info(
            "Manual auto-close sweep by %s closed %d market(s)", admin_id, len(result.closed)
        )
        return result.to_dict()

    # -- wallets -------------------------------------------------------

    async def adjust_wallet(
        self, db: AsyncSession, user_id: str, req: AdjustBalanceRequest, admin_id: str
    ) -> AdjustBalanceResponse:
        return await self._wallets.adjust_balance(
            db, user_id, req.bucket.value, req.amount_paise, req.description, admin_id
        )
