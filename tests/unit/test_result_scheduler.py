"""Unit tests for AutoResultScheduler."""

import re
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from src.mk_common.enums import DeclarationMethod
from src.mk_common.errors import ResultAlreadyDeclaredError
from src.mk_scheduler.result_scheduler import (
    AUTO_DECLARED_BY,
    AutoResultScheduler,
    random_result,
)
from tests.factories import ist, make_market


def _factory():
    db = MagicMock()
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=db)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory, db


def _scheduler(*markets, source=lambda m: "42"):
    factory, db = _factory()
    repo = MagicMock()
    repo.list_awaiting_result = AsyncMock(return_value=list(markets))
    settlement = MagicMock()
    settlement.declare_result = AsyncMock(side_effect=lambda *a, **kw: f"report:{a[1]}")
    scheduler = AutoResultScheduler(
        factory,
        settlement=settlement,
        market_repo=repo,
        result_source=source,
        delay=timedelta(hours=24),
    )
    return scheduler, settlement, db


def _closed(**kw):
    return make_market(current_status="CLOSED", accepting_bets=False, **kw)


async def test_declares_only_overdue_markets() -> None:
    overdue = _closed(id="MKT-A")
    fresh = _closed(id="MKT-B", end_at_utc=ist(14, 40, day=18))
    scheduler, settlement, db = _scheduler(overdue, fresh)

    reports = await scheduler.run_once(ist(14, 41, day=18))

    assert reports == ["report:MKT-A"]
    args, kwargs = settlement.declare_result.call_args
    assert args[0] is db
    assert args[1] == "MKT-A"
    assert args[2].jodi == "42"
    assert args[3] == AUTO_DECLARED_BY
    assert kwargs["method"] is DeclarationMethod.AUTOMATIC


async def test_nothing_due_before_delay() -> None:
    scheduler, settlement, _ = _scheduler(_closed())
    assert await scheduler.run_once(ist(20, 0)) == []
    settlement.declare_result.assert_not_awaited()


async def test_already_declared_market_is_skipped() -> None:
    scheduler, settlement, _ = _scheduler(_closed(declared_result="27"))
    assert await scheduler.run_once(ist(16, 0, day=18)) == []
    settlement.declare_result.assert_not_awaited()


async def test_lost_race_is_skipped_not_raised() -> None:
    scheduler, settlement, _ = _scheduler(_closed(id="MKT-A"), _closed(id="MKT-B"))
    settlement.declare_result = AsyncMock(
        side_effect=[ResultAlreadyDeclaredError("MKT-A"), "report:MKT-B"]
    )

    reports = await scheduler.run_once(ist(16, 0, day=18))

    assert reports == ["report:MKT-B"]


async def test_run_job_swallows_and_logs(caplog) -> None:
    scheduler, _, _ = _scheduler()
    scheduler._market_repo.list_awaiting_result = AsyncMock(side_effect=RuntimeError("boom"))

    await scheduler._run_job()

    assert "Auto-result check failed" in caplog.text


async def test_start_and_stop() -> None:
    factory, _ = _factory()
    apscheduler = MagicMock()
    scheduler = AutoResultScheduler(
        factory, settlement=MagicMock(), market_repo=MagicMock(),
        interval=timedelta(minutes=60), scheduler=apscheduler,
    )

    await scheduler.start()
    assert scheduler.is_running
    assert apscheduler.add_job.call_args.args[1].interval == timedelta(minutes=60)

    await scheduler.stop()
    assert not scheduler.is_running
    apscheduler.shutdown.assert_called_once_with(wait=False)


def test_random_result_is_two_digits() -> None:
    for _ in range(50):
        assert re.fullmatch(r"\d{2}", random_result(make_market()))
