"""AutoCloseSweeper — periodic market phase maintenance.

One tick, in one DB transaction:

    1. roll declared markets whose cycle has passed over to the next cycle (WAITING)
    2. open WAITING markets whose start instant has arrived
    3. close every active market whose end instant has passed

Each step is a single set-based UPDATE ... RETURNING, so running a tick twice
at the same instant changes nothing the second time. With several API workers
an optional Redis lock lets only one of them sweep per tick.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

import redis.asyncio as aioredis
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.mk_common.datetime_utils import utc_now
from src.mk_common.errors import MarketNotFoundError, ResultAlreadyDeclaredError
from src.mk_market.application.schemas import MarketDetail
from src.mk_market.domain.lifecycle import current_cycle_date, resolve_utc_instants
from src.mk_market.domain.models import ClosedMarket
from src.mk_market.domain.repository import MarketRepositoryProtocol
from src.mk_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)

MAX_INTERVAL_SECONDS = 60
JOB_ID = "auto-close-sweep"


class RedisSweepLock:
    """Best-effort per-tick mutex: SET key NX EX ttl, never released early."""

    def __init__(
        self,
        redis_getter: Callable[[], Awaitable[aioredis.Redis]],
        key: str = "mk:lock:auto-close",
        ttl_seconds: int = 25,
    ) -> None:
        self._redis_getter = redis_getter
        self._key = key
        self._ttl = ttl_seconds

    async def acquire(self) -> bool:
        redis = await self._redis_getter()
        return bool(await redis.set(self._key, "1", nx=True, ex=self._ttl))


@dataclass
class SweepResult:
    run_at: datetime
    closed: list[ClosedMarket] = field(default_factory=list)
    opened: list[str] = field(default_factory=list)
    rolled_over: list[str] = field(default_factory=list)
    skipped: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "run_at": self.run_at.isoformat(),
            "closed": [
                {"id": m.id, "name": m.name, "closed_at": m.closed_at.isoformat()}
                for m in self.closed
            ],
            "opened": self.opened,
            "rolled_over": self.rolled_over,
            "skipped": self.skipped,
        }


class AutoCloseSweeper:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repo: MarketRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
        interval_seconds: int = 30,
        lock: RedisSweepLock | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        if not 0 < interval_seconds <= MAX_INTERVAL_SECONDS:
            raise ValueError(
                f"interval_seconds must be in (0, {MAX_INTERVAL_SECONDS}], got {interval_seconds}"
            )
        self._session_factory = session_factory
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._clock = clock
        self._interval = interval_seconds
        self._lock = lock
        self._scheduler = scheduler
        self._running = False
        self._last_result: SweepResult | None = None
        self._last_error: str | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        # catch up on anything that expired while the service was down
        await self._run_job()
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._run_job,
            IntervalTrigger(seconds=self._interval),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info("Auto-close sweeper started (every %ss)", self._interval)

    async def stop(self) -> None:
        if not self._running:
            return
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        self._running = False
        logger.info("Auto-close sweeper stopped")

    async def _run_job(self) -> None:
        try:
            await self.sweep_once()
        except Exception as exc:
            self._last_error = str(exc)
            logger.exception("Auto-close sweep failed")

    async def sweep_once(self, now: datetime | None = None) -> SweepResult:
        now = now or self._clock()
        if self._lock is not None and not await self._lock.acquire():
            logger.debug("Auto-close sweep skipped, another worker holds the lock")
            return SweepResult(run_at=now, skipped=True)

        result = SweepResult(run_at=now)
        async with self._session_factory() as db:
            try:
                for market in await self._repo.list_declared(db):
                    if market.cycle_date is None:
                        continue
                    target = current_cycle_date(market, now)
                    if target <= market.cycle_date:
                        continue
                    rolled = await self._repo.open_next_cycle(
                        db, market.id, resolve_utc_instants(market, target), now
                    )
                    if rolled is not None:
                        result.rolled_over.append(rolled.id)
                result.opened = await self._repo.open_started(db, now)
                result.closed = await self._repo.close_expired(db, now)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        for market in result.closed:
            logger.info("Market %s (%s) auto-closed at %s", market.name, market.id, now.isoformat())
        if result.opened or result.rolled_over:
            logger.info(
                "Sweep at %s: opened %s, rolled over %s",
                now.isoformat(), result.opened, result.rolled_over,
            )
        self._last_result = result
        self._last_error = None
        return result

    async def force_close(
        self, db: AsyncSession, market_id: str, triggered_by: str
    ) -> MarketDetail:
        now = self._clock()
        try:
            if await self._repo.get_market(db, market_id) is None:
                raise MarketNotFoundError(market_id)
            market = await self._repo.force_close(db, market_id, now, triggered_by)
            if market is None:
                raise ResultAlreadyDeclaredError(market_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning("Market %s force-closed by %s", market_id, triggered_by)
        return MarketDetail.from_domain(market)

    def status(self) -> dict[str, object]:
        last = self._last_result
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "lock_enabled": self._lock is not None,
            "last_run_at": last.run_at.isoformat() if last else None,
            "last_closed_count": len(last.closed) if last else 0,
            "last_error": self._last_error,
        }
