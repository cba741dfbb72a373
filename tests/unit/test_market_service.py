"""Unit tests for MarketApplicationService."""

from dataclasses import replace
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mk_common.enums import MarketPhase
from src.mk_common.errors import (
    InvalidMarketConfigError,
    MarketHasBetsError,
    MarketNameExistsError,
    MarketNotFoundError,
    ResultAlreadyDeclaredError,
    ResultNotDeclaredError,
)
from src.mk_market.application.schemas import MarketCreateRequest, MarketUpdateRequest
from src.mk_market.application.service import MarketApplicationService
from tests.factories import ist, make_market


def _db():
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def _repo(market=None):
    repo = MagicMock()
    repo.get_market = AsyncMock(return_value=market)
    repo.get_market_by_name = AsyncMock(return_value=None)
    repo.create_market = AsyncMock(side_effect=lambda db, m: m)
    repo.update_market = AsyncMock(
        side_effect=lambda db, mid, fields: replace(market, **fields)
    )
    repo.count_bets = AsyncMock(return_value=0)
    repo.delete_market = AsyncMock(return_value=True)
    repo.open_next_cycle = AsyncMock(
        side_effect=lambda db, mid, inst, now: replace(
            market, declared_result=None, current_status="WAITING",
            cycle_date=inst.cycle_date, start_at_utc=inst.start_at_utc,
            end_at_utc=inst.end_at_utc, result_at_utc=inst.result_at_utc,
        )
    )
    return repo


class TestReads:
    async def test_list_computes_phase_per_market(self) -> None:
        repo = _repo()
        repo.list_markets = AsyncMock(return_value=[
            make_market(),
            make_market(id="MKT-GALI", name="Gali", start_time="08:00",
                        end_time="23:10", result_time="00:30"),
        ])

        resp = await MarketApplicationService(repo).list_markets(_db(), ist(15, 0))

        delhi, gali = resp.items
        assert delhi.phase is MarketPhase.CLOSED
        assert delhi.accepting_bets is False
        assert gali.phase is MarketPhase.OPEN

    async def test_status_of_open_market(self) -> None:
        resp = await MarketApplicationService(_repo(make_market())).get_market_status(
            _db(), "MKT-DELHI", ist(14, 0)
        )
        assert resp.phase is MarketPhase.OPEN
        assert resp.accepting_bets is True
        assert resp.time_remaining == "40m to close"

    async def test_unknown_market(self) -> None:
        with pytest.raises(MarketNotFoundError):
            await MarketApplicationService(_repo()).get_market(_db(), "MKT-X")

    async def test_pending_results(self) -> None:
        repo = _repo()
        repo.list_awaiting_result = AsyncMock(
            return_value=[make_market(current_status="CLOSED")]
        )

        resp = await MarketApplicationService(repo).list_pending_results(
            _db(), ist(14, 40, day=18), timedelta(hours=24)
        )

        item = resp.items[0]
        assert item.auto_result_at == ist(14, 40, day=18).isoformat()
        assert item.hours_remaining == 0
        assert item.is_overdue is True


class TestCreate:
    async def test_create_anchors_current_cycle(self) -> None:
        repo = _repo()
        req = MarketCreateRequest(
            name="Disawer", start_time="08:00", end_time="03:30", result_time="05:00"
        )

        detail = await MarketApplicationService(repo).create_market(
            _db(), req, "admin-1", ist(10, 0)
        )

        assert detail.cycle_date == date(2026, 10, 17)
        assert detail.current_status == "WAITING"
        assert detail.end_at_utc == ist(3, 30, day=18).isoformat()
        assert detail.crossing_rule == "REVERSIBLE"

    async def test_duplicate_name(self) -> None:
        repo = _repo()
        repo.get_market_by_name = AsyncMock(return_value=make_market())
        db = _db()
        req = MarketCreateRequest(
            name="Delhi Bazar", start_time="08:00", end_time="14:40", result_time="15:15"
        )
        with pytest.raises(MarketNameExistsError):
            await MarketApplicationService(repo).create_market(db, req, "admin-1", ist(10, 0))
        db.rollback.assert_awaited_once()

    async def test_min_bet_ceiling(self) -> None:
        req = MarketCreateRequest(
            name="Big", start_time="08:00", end_time="14:40", result_time="15:15",
            min_bet_paise=600000, max_bet_paise=1000000,
        )
        with pytest.raises(InvalidMarketConfigError):
            await MarketApplicationService(_repo()).create_market(
                _db(), req, "admin-1", ist(10, 0)
            )


class TestUpdate:
    async def test_schedule_change_reanchors_instants(self) -> None:
        repo = _repo(make_market())

        detail = await MarketApplicationService(repo).update_market(
            _db(), "MKT-DELHI", MarketUpdateRequest(end_time="15:00"), ist(10, 0)
        )

        fields = repo.update_market.call_args.args[2]
        assert fields["end_at_utc"] == ist(15, 0)
        assert detail.end_time == "15:00"

    async def test_limits_checked_against_existing(self) -> None:
        repo = _repo(make_market(max_bet=5000))
        with pytest.raises(InvalidMarketConfigError):
            await MarketApplicationService(repo).update_market(
                _db(), "MKT-DELHI", MarketUpdateRequest(min_bet_paise=6000), ist(10, 0)
            )

    async def test_enum_fields_stored_as_values(self) -> None:
        repo = _repo(make_market())
        await MarketApplicationService(repo).update_market(
            _db(), "MKT-DELHI", MarketUpdateRequest(crossing_rule="EXACT"), ist(10, 0)
        )
        assert repo.update_market.call_args.args[2] == {"crossing_rule": "EXACT"}


class TestDelete:
    async def test_delete(self) -> None:
        db = _db()
        resp = await MarketApplicationService(_repo(make_market())).delete_market(db, "MKT-DELHI")
        assert resp["deleted"] == "true"
        db.commit.assert_awaited_once()

    async def test_any_bet_blocks_delete(self) -> None:
        repo = _repo(make_market())
        repo.count_bets = AsyncMock(return_value=3)
        db = _db()
        with pytest.raises(MarketHasBetsError) as exc:
            await MarketApplicationService(repo).delete_market(db, "MKT-DELHI")
        assert exc.value.http_status == 409
        assert exc.value.code == 3006
        repo.delete_market.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_guarded_delete_losing_race_is_conflict(self) -> None:
        repo = _repo(make_market())
        repo.count_bets = AsyncMock(side_effect=[0, 1])
        repo.delete_market = AsyncMock(return_value=False)
        db = _db()
        with pytest.raises(MarketHasBetsError):
            await MarketApplicationService(repo).delete_market(db, "MKT-DELHI")
        db.commit.assert_not_awaited()


class TestForceStatus:
    async def test_force_and_clear(self) -> None:
        repo = _repo(make_market())
        repo.force_status = AsyncMock(side_effect=lambda db, mid, status, now: replace(
            make_market(), forced_status=status
        ))
        svc = MarketApplicationService(repo)

        forced = await svc.force_status(_db(), "MKT-DELHI", MarketPhase.CLOSED, ist(10, 0), "a")
        cleared = await svc.force_status(_db(), "MKT-DELHI", None, ist(10, 0), "a")

        assert forced.forced_status == "CLOSED"
        assert cleared.forced_status is None
        assert repo.force_status.call_args_list[0].args[2] == "CLOSED"

    async def test_cannot_reopen_declared_market(self) -> None:
        repo = _repo(make_market(declared_result="27", current_status="RESULT_DECLARED"))
        repo.force_status = AsyncMock()
        db = _db()

        with pytest.raises(ResultAlreadyDeclaredError):
            await MarketApplicationService(repo).force_status(
                db, "MKT-DELHI", MarketPhase.OPEN, ist(15, 30), "a"
            )

        repo.force_status.assert_not_awaited()
        db.commit.assert_not_awaited()

    async def test_declared_market_can_still_be_forced_closed(self) -> None:
        declared = make_market(declared_result="27", current_status="RESULT_DECLARED")
        repo = _repo(declared)
        repo.force_status = AsyncMock(side_effect=lambda db, mid, status, now: replace(
            declared, forced_status=status
        ))
        detail = await MarketApplicationService(repo).force_status(
            _db(), "MKT-DELHI", MarketPhase.CLOSED, ist(15, 30), "a"
        )
        assert detail.forced_status == "CLOSED"

    async def test_reopen_losing_race_to_declaration(self) -> None:
        repo = _repo(make_market())
        repo.force_status = AsyncMock(return_value=None)
        with pytest.raises(ResultAlreadyDeclaredError):
            await MarketApplicationService(repo).force_status(
                _db(), "MKT-DELHI", MarketPhase.OPEN, ist(15, 30), "a"
            )


class TestNextCycle:
    async def test_rolls_declared_market_to_next_day(self) -> None:
        repo = _repo(make_market(declared_result="27", current_status="RESULT_DECLARED"))

        detail = await MarketApplicationService(repo).open_next_cycle(
            _db(), "MKT-DELHI", ist(16, 0)
        )

        assert detail.cycle_date == date(2026, 10, 18)
        assert detail.start_at_utc == ist(8, 0, day=18).isoformat()
        assert detail.declared_result is None

    async def test_explicit_cycle_date(self) -> None:
        repo = _repo(make_market(declared_result="27"))
        detail = await MarketApplicationService(repo).open_next_cycle(
            _db(), "MKT-DELHI", ist(16, 0), date(2026, 10, 20)
        )
        assert detail.cycle_date == date(2026, 10, 20)

    async def test_requires_declared_result(self) -> None:
        with pytest.raises(ResultNotDeclaredError):
            await MarketApplicationService(_repo(make_market())).open_next_cycle(
                _db(), "MKT-DELHI", ist(16, 0)
            )
