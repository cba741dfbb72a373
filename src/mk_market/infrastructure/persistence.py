"""MarketRepository — raw SQL over the markets table.

Every status transition is one conditional UPDATE ... RETURNING, so two
workers (or an admin and the sweeper) racing on the same market cannot both
win: the loser simply gets no row back.
"""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import MarketPhase
from src.mk_common.errors import InternalError
from src.mk_market.domain.lifecycle import CycleInstants
from src.mk_market.domain.models import ClosedMarket, Market

# Forcing a market OPEN pushes its end instant out so the sweeper does not
# close it again on the next tick.
FORCED_OPEN_EXTENSION = timedelta(hours=24)

_MARKET_COLUMNS = """
    id, name, market_type, is_active,
    start_time, end_time, result_time, timezone,
    start_at_utc, end_at_utc, result_at_utc, cycle_date,
    current_status, forced_status, accepting_bets,
    auto_closed_at, manually_closed_at, manually_closed_by, last_status_change,
    min_bet, max_bet, jodi_multiplier, haruf_multiplier, crossing_multiplier, crossing_rule,
    declared_result, result_jodi, result_haruf, result_crossing,
    result_declared_at, result_declared_by, result_method,
    created_by, created_at, updated_at
"""

_GET_MARKET_SQL = text(f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id")

_GET_MARKET_BY_NAME_SQL = text(f"SELECT {_MARKET_COLUMNS} FROM markets WHERE name = :name")

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE (:include_inactive OR is_active)
    ORDER BY end_time ASC, name ASC
""")

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets
        (id, name, market_type, is_active, start_time, end_time, result_time, timezone,
         start_at_utc, end_at_utc, result_at_utc, cycle_date,
         current_status, accepting_bets, last_status_change,
         min_bet, max_bet, jodi_multiplier, haruf_multiplier, crossing_multiplier,
         crossing_rule, created_by)
    VALUES
        (:id, :name, :market_type, :is_active, :start_time, :end_time, :result_time, :timezone,
         :start_at_utc, :end_at_utc, :result_at_utc, :cycle_date,
         :current_status, :accepting_bets, :last_status_change,
         :min_bet, :max_bet, :jodi_multiplier, :haruf_multiplier, :crossing_multiplier,
         :crossing_rule, :created_by)
    RETURNING {_MARKET_COLUMNS}
""")

_UPDATABLE_COLUMNS = frozenset({
    "name", "market_type", "is_active",
    "start_time", "end_time", "result_time", "timezone",
    "start_at_utc", "end_at_utc", "result_at_utc", "cycle_date",
    "min_bet", "max_bet",
    "jodi_multiplier", "haruf_multiplier", "crossing_multiplier", "crossing_rule",
})

_COUNT_BETS_SQL = text("""
    SELECT COUNT(*) FROM bets WHERE market_id = :market_id
""")

# Settled bets still reference the market, so any bet at all blocks the delete.
_DELETE_MARKET_SQL = text("""
    DELETE FROM markets
    WHERE id = :market_id
      AND NOT EXISTS (
          SELECT 1 FROM bets WHERE bets.market_id = markets.id
      )
    RETURNING id
""")

_FORCE_STATUS_SQL = text(f"""
    UPDATE markets
    SET forced_status = CAST(:forced_status AS VARCHAR),
        current_status = COALESCE(CAST(:forced_status AS VARCHAR), current_status),
        accepting_bets = COALESCE(CAST(:accepting_bets AS BOOLEAN), accepting_bets),
        end_at_utc = COALESCE(CAST(:end_at_utc AS TIMESTAMPTZ), end_at_utc),
        manually_closed_at = CASE WHEN :reopen THEN NULL ELSE manually_closed_at END,
        manually_closed_by = CASE WHEN :reopen THEN NULL ELSE manually_closed_by END,
        last_status_change = :now,
        updated_at = NOW()
    WHERE id = :market_id
      AND NOT (:reopen AND declared_result IS NOT NULL)
    RETURNING {_MARKET_COLUMNS}
""")

_FORCE_CLOSE_SQL = text(f"""
    UPDATE markets
    SET current_status = 'CLOSED',
        forced_status = NULL,
        accepting_bets = FALSE,
        manually_closed_at = :now,
        manually_closed_by = :closed_by,
        last_status_change = :now,
        updated_at = NOW()
    WHERE id = :market_id AND current_status <> 'RESULT_DECLARED'
    RETURNING {_MARKET_COLUMNS}
""")

# Set-based sweep. Already-closed rows never match, so auto_closed_at is
# written exactly once per cycle.
_CLOSE_EXPIRED_SQL = text("""
    UPDATE markets
    SET current_status = 'CLOSED',
        forced_status = NULL,
        accepting_bets = FALSE,
        auto_closed_at = :now,
        last_status_change = :now,
        updated_at = NOW()
    WHERE is_active
      AND end_at_utc IS NOT NULL
      AND end_at_utc <= :now
      AND current_status NOT IN ('CLOSED', 'RESULT_DECLARED')
    RETURNING id, name, auto_closed_at
""")

_OPEN_STARTED_SQL = text("""
    UPDATE markets
    SET current_status = 'OPEN',
        last_status_change = :now,
        updated_at = NOW()
    WHERE is_active
      AND forced_status IS NULL
      AND current_status = 'WAITING'
      AND start_at_utc <= :now
      AND end_at_utc > :now
    RETURNING id
""")

_CLAIM_DECLARATION_SQL = text(f"""
    UPDATE markets
    SET declared_result = :declared_result,
        result_jodi = :result_jodi,
        result_haruf = :result_haruf,
        result_crossing = :result_crossing,
        result_declared_at = :now,
        result_declared_by = :declared_by,
        result_method = :method,
        current_status = 'RESULT_DECLARED',
        forced_status = NULL,
        accepting_bets = FALSE,
        last_status_change = :now,
        updated_at = NOW()
    WHERE id = :market_id
      AND declared_result IS NULL
      AND (NOT :enforce_closed OR current_status = 'CLOSED')
    RETURNING {_MARKET_COLUMNS}
""")

_OPEN_NEXT_CYCLE_SQL = text(f"""
    UPDATE markets
    SET cycle_date = :cycle_date,
        start_at_utc = :start_at_utc,
        end_at_utc = :end_at_utc,
        result_at_utc = :result_at_utc,
        current_status = 'WAITING',
        forced_status = NULL,
        accepting_bets = TRUE,
        auto_closed_at = NULL,
        manually_closed_at = NULL,
        manually_closed_by = NULL,
        declared_result = NULL,
        result_jodi = NULL,
        result_haruf = NULL,
        result_crossing = NULL,
        result_declared_at = NULL,
        result_declared_by = NULL,
        result_method = NULL,
        last_status_change = :now,
        updated_at = NOW()
    WHERE id = :market_id AND declared_result IS NOT NULL
    RETURNING {_MARKET_COLUMNS}
""")

_LIST_AWAITING_RESULT_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE is_active AND current_status = 'CLOSED' AND declared_result IS NULL
    ORDER BY end_at_utc ASC
""")

_LIST_DECLARED_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE is_active AND current_status = 'RESULT_DECLARED' AND declared_result IS NOT NULL
""")


def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        market_type=row.market_type,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        start_time=row.start_time,  # type: ignore[attr-defined]
        end_time=row.end_time,  # type: ignore[attr-defined]
        result_time=row.result_time,  # type: ignore[attr-defined]
        timezone=row.timezone,  # type: ignore[attr-defined]
        start_at_utc=row.start_at_utc,  # type: ignore[attr-defined]
        end_at_utc=row.end_at_utc,  # type: ignore[attr-defined]
        result_at_utc=row.result_at_utc,  # type: ignore[attr-defined]
        cycle_date=row.cycle_date,  # type: ignore[attr-defined]
        current_status=row.current_status,  # type: ignore[attr-defined]
        forced_status=row.forced_status,  # type: ignore[attr-defined]
        accepting_bets=row.accepting_bets,  # type: ignore[attr-defined]
        auto_closed_at=row.auto_closed_at,  # type: ignore[attr-defined]
        manually_closed_at=row.manually_closed_at,  # type: ignore[attr-defined]
        manually_closed_by=row.manually_closed_by,  # type: ignore[attr-defined]
        last_status_change=row.last_status_change,  # type: ignore[attr-defined]
        min_bet=row.min_bet,  # type: ignore[attr-defined]
        max_bet=row.max_bet,  # type: ignore[attr-defined]
        jodi_multiplier=row.jodi_multiplier,  # type: ignore[attr-defined]
        haruf_multiplier=row.haruf_multiplier,  # type: ignore[attr-defined]
        crossing_multiplier=row.crossing_multiplier,  # type: ignore[attr-defined]
        crossing_rule=row.crossing_rule,  # type: ignore[attr-defined]
        declared_result=row.declared_result,  # type: ignore[attr-defined]
        result_jodi=row.result_jodi,  # type: ignore[attr-defined]
        result_haruf=row.result_haruf,  # type: ignore[attr-defined]
        result_crossing=row.result_crossing,  # type: ignore[attr-defined]
        result_declared_at=row.result_declared_at,  # type: ignore[attr-defined]
        result_declared_by=row.result_declared_by,  # type: ignore[attr-defined]
        result_method=row.result_method,  # type: ignore[attr-defined]
        created_by=row.created_by,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class MarketRepository:
    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None:
        row = (await db.execute(_GET_MARKET_SQL, {"market_id": market_id})).fetchone()
        return _row_to_market(row) if row else None

    async def get_market_by_name(self, db: AsyncSession, name: str) -> Market | None:
        row = (await db.execute(_GET_MARKET_BY_NAME_SQL, {"name": name})).fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(self, db: AsyncSession, include_inactive: bool) -> list[Market]:
        result = await db.execute(_LIST_MARKETS_SQL, {"include_inactive": include_inactive})
        return [_row_to_market(row) for row in result.fetchall()]

    async def create_market(self, db: AsyncSession, market: Market) -> Market:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market.id,
                "name": market.name,
                "market_type": market.market_type,
                "is_active": market.is_active,
                "start_time": market.start_time,
                "end_time": market.end_time,
                "result_time": market.result_time,
                "timezone": market.timezone,
                "start_at_utc": market.start_at_utc,
                "end_at_utc": market.end_at_utc,
                "result_at_utc": market.result_at_utc,
                "cycle_date": market.cycle_date,
                "current_status": market.current_status,
                "accepting_bets": market.accepting_bets,
                "last_status_change": market.last_status_change,
                "min_bet": market.min_bet,
                "max_bet": market.max_bet,
                "jodi_multiplier": market.jodi_multiplier,
                "haruf_multiplier": market.haruf_multiplier,
                "crossing_multiplier": market.crossing_multiplier,
                "crossing_rule": market.crossing_rule,
                "created_by": market.created_by,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Market insert returned no rows")
        return _row_to_market(row)

    async def update_market(
        self, db: AsyncSession, market_id: str, fields: dict[str, Any]
    ) -> Market | None:
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise InternalError(f"Refusing to update columns: {sorted(unknown)}")
        if not fields:
            return await self.get_market(db, market_id)
        assignments = ", ".join(f"{column} = :{column}" for column in sorted(fields))
        statement = text(f"""
            UPDATE markets
            SET {assignments}, updated_at = NOW()
            WHERE id = :market_id
            RETURNING {_MARKET_COLUMNS}
        """)
        row = (await db.execute(statement, {**fields, "market_id": market_id})).fetchone()
        return _row_to_market(row) if row else None

    async def delete_market(self, db: AsyncSession, market_id: str) -> bool:
        row = (await db.execute(_DELETE_MARKET_SQL, {"market_id": market_id})).fetchone()
        return row is not None

    async def count_bets(self, db: AsyncSession, market_id: str) -> int:
        result = await db.execute(_COUNT_BETS_SQL, {"market_id": market_id})
        return int(result.scalar_one())

    async def force_status(
        self,
        db: AsyncSession,
        market_id: str,
        status: str | None,
        now: datetime,
    ) -> Market | None:
        reopen = status == MarketPhase.OPEN
        if status is None:
            accepting: bool | None = None
        else:
            accepting = reopen
        row = (
            await db.execute(
                _FORCE_STATUS_SQL,
                {
                    "market_id": market_id,
                    "forced_status": status,
                    "accepting_bets": accepting,
                    "end_at_utc": now + FORCED_OPEN_EXTENSION if reopen else None,
                    "reopen": reopen,
                    "now": now,
                },
            )
        ).fetchone()
        return _row_to_market(row) if row else None

    async def force_close(
        self, db: AsyncSession, market_id: str, now: datetime, closed_by: str
    ) -> Market | None:
        row = (
            await db.execute(
                _FORCE_CLOSE_SQL,
                {"market_id": market_id, "now": now, "closed_by": closed_by},
            )
        ).fetchone()
        return _row_to_market(row) if row else None

    async def close_expired(self, db: AsyncSession, now: datetime) -> list[ClosedMarket]:
        result = await db.execute(_CLOSE_EXPIRED_SQL, {"now": now})
        return [
            ClosedMarket(id=row.id, name=row.name, closed_at=row.auto_closed_at)
            for row in result.fetchall()
        ]

    async def open_started(self, db: AsyncSession, now: datetime) -> list[str]:
        result = await db.execute(_OPEN_STARTED_SQL, {"now": now})
        return [row.id for row in result.fetchall()]

    async def claim_declaration(
        self,
        db: AsyncSession,
        market_id: str,
        values: dict[str, str | None],
        declared_by: str,
        method: str,
        now: datetime,
        enforce_closed: bool,
    ) -> Market | None:
        row = (
            await db.execute(
                _CLAIM_DECLARATION_SQL,
                {
                    "market_id": market_id,
                    "declared_result": values["declared_result"],
                    "result_jodi": values.get("jodi"),
                    "result_haruf": values.get("haruf"),
                    "result_crossing": values.get("crossing"),
                    "declared_by": declared_by,
                    "method": method,
                    "now": now,
                    "enforce_closed": enforce_closed,
                },
            )
        ).fetchone()
        return _row_to_market(row) if row else None

    async def open_next_cycle(
        self, db: AsyncSession, market_id: str, instants: CycleInstants, now: datetime
    ) -> Market | None:
        row = (
            await db.execute(
                _OPEN_NEXT_CYCLE_SQL,
                {
                    "market_id": market_id,
                    "cycle_date": instants.cycle_date,
                    "start_at_utc": instants.start_at_utc,
                    "end_at_utc": instants.end_at_utc,
                    "result_at_utc": instants.result_at_utc,
                    "now": now,
                },
            )
        ).fetchone()
        return _row_to_market(row) if row else None

    async def list_awaiting_result(self, db: AsyncSession) -> list[Market]:
        result = await db.execute(_LIST_AWAITING_RESULT_SQL)
        return [_row_to_market(row) for row in result.fetchall()]

    async def list_declared(self, db: AsyncSession) -> list[Market]:
        result = await db.execute(_LIST_DECLARED_SQL)
        return [_row_to_market(row) for row in result.fetchall()]
