"""AutoResultScheduler — declares results for markets nobody declared in time.

Disabled by default (AUTO_RESULT_ENABLED). When on, every check interval it
looks at CLOSED markets without a result and, once `end + delay` has passed,
declares a value from the injected result source through the normal
SettlementService path (same claim, same savepoints, method AUTOMATIC).
"""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import DeclarationMethod
from src.mk_common.errors import AppError
from src.mk_market.domain.lifecycle import should_auto_declare
from src.mk_market.domain.models import Market
from src.mk_market.domain.repository import MarketRepositoryProtocol
from src.mk_market.infrastructure.persistence import MarketRepository
from src.mk_settlement.application.schemas import DeclareResultRequest, DeclareResultResponse
from src.mk_settlement.application.service import SettlementService

logger = logging.getLogger(__name__)

AUTO_DECLARED_BY = "system:auto-result"
JOB_ID = "auto-result-check"

ResultSource = Callable[[Market], str]


def random_result(market: Market) -> str:
    return f"{secrets.randbelow(100):02d}"


class AutoResultScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settlement: SettlementService | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
        result_source: ResultSource = random_result,
        delay: timedelta = timedelta(hours=24),
        interval: timedelta = timedelta(hours=1),
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._settlement = settlement or SettlementService(market_repo=self._market_repo)
        self._clock = clock
        self._result_source = result_source
        self._delay = delay
        self._interval = interval
        self._scheduler = scheduler
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._run_job,
            IntervalTrigger(seconds=int(self._interval.total_seconds())),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info(
            "Auto-result scheduler started (check every %s, delay %s)", self._interval, self._delay
        )

    async def stop(self) -> None:
        if not self._running:
            return
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        self._running = False

    async def _run_job(self) -> None:
        try:
            await self.run_once()
        except Exception:
            logger.exception("Auto-result check failed")

    async def run_once(self, now: datetime | None = None) -> list[DeclareResultResponse]:
        now = now or self._clock()
        async with self._session_factory() as db:
            candidates = await self._market_repo.list_awaiting_result(db)
        due = [m for m in candidates if should_auto_declare(m, now, self._delay)]

        declared: list[DeclareResultResponse] = []
        for market in due:
            value = self._result_source(market)
            async with self._session_factory() as db:
                try:
                    report = await self._settlement.declare_result(
                        db,
                        market.id,
                        DeclareResultRequest(jodi=value),
                        AUTO_DECLARED_BY,
                        now,
                        method=DeclarationMethod.AUTOMATIC,
                    )
                except AppError as exc:
                    # lost the race to a manual declaration, or the market changed
                    logger.warning(
                        "Auto-declare skipped for %s: %s (%s)", market.name, exc.message, exc.code
                    )
                    continue
            logger.info("Auto-declared %s for %s", value, market.name)
            declared.append(report)
        return declared
