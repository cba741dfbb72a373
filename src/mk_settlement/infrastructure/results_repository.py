"""ResultSummaryRepository — one market_results row per declaration.

UNIQUE (market_id, cycle_date) in the table backs the "declared at most once
per cycle" rule at the database level as well.
"""

import json
from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.errors import InternalError
from src.mk_settlement.domain.models import PublishedResult, ResultSummary, TypeBreakdown

_SUMMARY_COLUMNS = """
    id, market_id, cycle_date, declared_result, result_jodi, result_haruf, result_crossing,
    method, declared_by, declared_at, total_bets, total_staked, total_paid, net_margin,
    winning_bets, losing_bets, unsettled_bets, breakdown, processed_at
"""

_INSERT_SUMMARY_SQL = text(f"""
    INSERT INTO market_results
        (id, market_id, cycle_date, declared_result, result_jodi, result_haruf,
         result_crossing, method, declared_by, declared_at, total_bets, total_staked,
         total_paid, net_margin, winning_bets, losing_bets, unsettled_bets, breakdown,
         processed_at)
    VALUES
        (:id, :market_id, :cycle_date, :declared_result, :result_jodi, :result_haruf,
         :result_crossing, :method, :declared_by, :declared_at, :total_bets, :total_staked,
         :total_paid, :net_margin, :winning_bets, :losing_bets, :unsettled_bets,
         CAST(:breakdown AS JSONB), :processed_at)
    RETURNING {_SUMMARY_COLUMNS}
""")

# Declaration fields are immutable; only counters and processed_at move.
_UPDATE_COUNTERS_SQL = text(f"""
    UPDATE market_results
    SET total_bets = :total_bets,
        total_staked = :total_staked,
        total_paid = :total_paid,
        net_margin = :net_margin,
        winning_bets = :winning_bets,
        losing_bets = :losing_bets,
        unsettled_bets = :unsettled_bets,
        breakdown = CAST(:breakdown AS JSONB),
        processed_at = :processed_at
    WHERE id = :id AND processed_at IS NULL
    RETURNING {_SUMMARY_COLUMNS}
""")

_GET_UNPROCESSED_SQL = text(f"""
    SELECT {_SUMMARY_COLUMNS}
    FROM market_results
    WHERE market_id = :market_id AND processed_at IS NULL
    ORDER BY declared_at DESC
    LIMIT 1
""")

_LIST_FOR_MARKET_SQL = text(f"""
    SELECT {_SUMMARY_COLUMNS}
    FROM market_results
    WHERE market_id = :market_id
    ORDER BY declared_at DESC
    LIMIT :limit
""")

_PUBLISHED_COLUMNS = """
    r.market_id, m.name AS market_name, r.cycle_date, r.declared_result,
    r.result_jodi, r.result_haruf, r.result_crossing, r.method, r.declared_at
"""

# Board reads go through market_results because rollover clears the
# declared fields on the market row.
_LIST_PUBLISHED_BETWEEN_SQL = text(f"""
    SELECT {_PUBLISHED_COLUMNS}
    FROM market_results r
    JOIN markets m ON m.id = r.market_id
    WHERE m.is_active
      AND r.cycle_date BETWEEN :date_from AND :date_to
    ORDER BY r.cycle_date DESC, r.declared_at DESC
""")

_LATEST_PUBLISHED_SQL = text(f"""
    SELECT {_PUBLISHED_COLUMNS}
    FROM market_results r
    JOIN markets m ON m.id = r.market_id
    WHERE r.market_id = :market_id
    ORDER BY r.declared_at DESC
    LIMIT 1
""")


def _row_to_summary(row: object) -> ResultSummary:
    raw = row.breakdown  # type: ignore[attr-defined]
    if isinstance(raw, str):
        raw = json.loads(raw)
    return ResultSummary(
        id=row.id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        cycle_date=row.cycle_date,  # type: ignore[attr-defined]
        declared_result=row.declared_result,  # type: ignore[attr-defined]
        result_jodi=row.result_jodi,  # type: ignore[attr-defined]
        result_haruf=row.result_haruf,  # type: ignore[attr-defined]
        result_crossing=row.result_crossing,  # type: ignore[attr-defined]
        method=row.method,  # type: ignore[attr-defined]
        declared_by=row.declared_by,  # type: ignore[attr-defined]
        declared_at=row.declared_at,  # type: ignore[attr-defined]
        total_bets=row.total_bets,  # type: ignore[attr-defined]
        total_staked=row.total_staked,  # type: ignore[attr-defined]
        total_paid=row.total_paid,  # type: ignore[attr-defined]
        winning_bets=row.winning_bets,  # type: ignore[attr-defined]
        losing_bets=row.losing_bets,  # type: ignore[attr-defined]
        unsettled_bets=row.unsettled_bets,  # type: ignore[attr-defined]
        breakdown={k: TypeBreakdown(**v) for k, v in (raw or {}).items()},
        processed_at=row.processed_at,  # type: ignore[attr-defined]
    )


def _row_to_published(row: object) -> PublishedResult:
    return PublishedResult(
        market_id=row.market_id,  # type: ignore[attr-defined]
        market_name=row.market_name,  # type: ignore[attr-defined]
        cycle_date=row.cycle_date,  # type: ignore[attr-defined]
        declared_result=row.declared_result,  # type: ignore[attr-defined]
        result_jodi=row.result_jodi,  # type: ignore[attr-defined]
        result_haruf=row.result_haruf,  # type: ignore[attr-defined]
        result_crossing=row.result_crossing,  # type: ignore[attr-defined]
        method=row.method,  # type: ignore[attr-defined]
        declared_at=row.declared_at,  # type: ignore[attr-defined]
    )

def _params(summary: ResultSummary) -> dict[str, object]:
    return {
        "id": summary.id,
        "total_bets": summary.total_bets,
        "total_staked": summary.total_staked,
        "total_paid": summary.total_paid,
        "net_margin": summary.net_margin,
        "winning_bets": summary.winning_bets,
        "losing_bets": summary.losing_bets,
        "unsettled_bets": summary.unsettled_bets,
        "breakdown": json.dumps(summary.breakdown_json()),
        "processed_at": summary.processed_at,
    }


class ResultSummaryRepository:
    async def insert_summary(self, db: AsyncSession, summary: ResultSummary) -> ResultSummary:
        params = _params(summary)
        params.update(
            market_id=summary.market_id,
            cycle_date=summary.cycle_date,
            declared_result=summary.declared_result,
            result_jodi=summary.result_jodi,
            result_haruf=summary.result_haruf,
            result_crossing=summary.result_crossing,
            method=summary.method,
            declared_by=summary.declared_by,
            declared_at=summary.declared_at,
        )
        row = (await db.execute(_INSERT_SUMMARY_SQL, params)).fetchone()
        if row is None:
            raise InternalError("Result summary insert returned no rows")
        return _row_to_summary(row)

    async def update_counters(
        self, db: AsyncSession, summary: ResultSummary
    ) -> ResultSummary | None:
        row = (await db.execute(_UPDATE_COUNTERS_SQL, _params(summary))).fetchone()
        return _row_to_summary(row) if row else None

    async def get_unprocessed(self, db: AsyncSession, market_id: str) -> ResultSummary | None:
        row = (await db.execute(_GET_UNPROCESSED_SQL, {"market_id": market_id})).fetchone()
        return _row_to_summary(row) if row else None

    async def list_for_market(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[ResultSummary]:
        result = await db.execute(_LIST_FOR_MARKET_SQL, {"market_id": market_id, "limit": limit})
        return [_row_to_summary(row) for row in result.fetchall()]

    async def list_published(
        self, db: AsyncSession, date_from: date, date_to: date
    ) -> list[PublishedResult]:
        """Results of active markets whose cycle_date falls in [date_from, date_to]."""
        result = await db.execute(
            _LIST_PUBLISHED_BETWEEN_SQL, {"date_from": date_from, "date_to": date_to}
        )
        return [_row_to_published(row) for row in result.fetchall()]

    async def latest_published(self, db: AsyncSession, market_id: str) -> PublishedResult | None:
        row = (await db.execute(_LATEST_PUBLISHED_SQL, {"market_id": market_id})).fetchone()
        return _row_to_published(row) if row else None
