"""BetRepository — raw SQL over the bets table.

The settlement claim is the idempotency guard: a bet only moves out of
PENDING once, whoever gets there first. A second claim returns False and the
caller must not credit anything.
"""

import json
from datetime import date, datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_betting.domain.models import Bet
from src.mk_common.errors import InternalError

_BET_COLUMNS = """
    id, user_id, market_id, bet_type, bet_number, bet_data, stake, potential_payout,
    status, is_winning, winning_amount, judged_result, result_processed_at,
    stake_transaction_id, win_transaction_id, cycle_date, created_at, updated_at
"""

_INSERT_BET_SQL = text(f"""
    INSERT INTO bets
        (id, user_id, market_id, bet_type, bet_number, bet_data, stake, potential_payout,
         status, stake_transaction_id, cycle_date)
    VALUES
        (:id, :user_id, :market_id, :bet_type, :bet_number, CAST(:bet_data AS JSONB),
         :stake, :potential_payout, :status, :stake_transaction_id, :cycle_date)
    RETURNING {_BET_COLUMNS}
""")

_GET_BET_SQL = text(f"SELECT {_BET_COLUMNS} FROM bets WHERE id = :bet_id")

_LIST_USER_BETS_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE user_id = :user_id
      AND (CAST(:market_id AS VARCHAR) IS NULL OR market_id = :market_id)
      AND (CAST(:status AS VARCHAR) IS NULL OR status = :status)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

# Bets from a previous cycle that failed to settle keep their own cycle_date,
# so a new declaration never judges them against the wrong result.
_LIST_PENDING_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE market_id = :market_id
      AND status = 'PENDING'
      AND result_processed_at IS NULL
      AND cycle_date IS NOT DISTINCT FROM CAST(:cycle_date AS DATE)
    ORDER BY created_at ASC, id ASC
""")

_CLAIM_SQL = text("""
    UPDATE bets
    SET status = :status,
        is_winning = :is_winning,
        winning_amount = :winning_amount,
        judged_result = :judged_result,
        result_processed_at = :now,
        updated_at = NOW()
    WHERE id = :bet_id
      AND status = 'PENDING'
      AND result_processed_at IS NULL
    RETURNING id
""")

_ATTACH_WIN_TXN_SQL = text("""
    UPDATE bets SET win_transaction_id = :transaction_id, updated_at = NOW()
    WHERE id = :bet_id
""")


def _row_to_bet(row: object) -> Bet:
    raw_data = row.bet_data  # type: ignore[attr-defined]
    if isinstance(raw_data, str):
        raw_data = json.loads(raw_data)
    return Bet(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        bet_type=row.bet_type,  # type: ignore[attr-defined]
        bet_number=row.bet_number,  # type: ignore[attr-defined]
        bet_data=raw_data if isinstance(raw_data, dict) else {},
        stake=row.stake,  # type: ignore[attr-defined]
        potential_payout=row.potential_payout,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        is_winning=row.is_winning,  # type: ignore[attr-defined]
        winning_amount=row.winning_amount,  # type: ignore[attr-defined]
        judged_result=row.judged_result,  # type: ignore[attr-defined]
        result_processed_at=row.result_processed_at,  # type: ignore[attr-defined]
        stake_transaction_id=row.stake_transaction_id,  # type: ignore[attr-defined]
        win_transaction_id=row.win_transaction_id,  # type: ignore[attr-defined]
        cycle_date=row.cycle_date,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class BetRepository:
    async def insert_bet(self, db: AsyncSession, bet: Bet) -> Bet:
        result = await db.execute(
            _INSERT_BET_SQL,
            {
                "id": bet.id,
                "user_id": bet.user_id,
                "market_id": bet.market_id,
                "bet_type": bet.bet_type,
                "bet_number": bet.bet_number,
                "bet_data": json.dumps(bet.bet_data),
                "stake": bet.stake,
                "potential_payout": bet.potential_payout,
                "status": bet.status,
                "stake_transaction_id": bet.stake_transaction_id,
                "cycle_date": bet.cycle_date,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Bet insert returned no rows")
        return _row_to_bet(row)

    async def get_bet(self, db: AsyncSession, bet_id: str) -> Bet | None:
        row = (await db.execute(_GET_BET_SQL, {"bet_id": bet_id})).fetchone()
        return _row_to_bet(row) if row else None

    async def list_user_bets(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        limit: int,
    ) -> list[Bet]:
        result = await db.execute(
            _LIST_USER_BETS_SQL,
            {"user_id": user_id, "market_id": market_id, "status": status, "limit": limit},
        )
        return [_row_to_bet(row) for row in result.fetchall()]

    async def list_pending_bets(
        self, db: AsyncSession, market_id: str, cycle_date: date | None
    ) -> list[Bet]:
        result = await db.execute(
            _LIST_PENDING_SQL, {"market_id": market_id, "cycle_date": cycle_date}
        )
        return [_row_to_bet(row) for row in result.fetchall()]

    async def claim_for_settlement(
        self,
        db: AsyncSession,
        bet_id: str,
        is_winning: bool,
        winning_amount: int,
        judged_result: str,
        now: datetime,
    ) -> bool:
        row = (
            await db.execute(
                _CLAIM_SQL,
                {
                    "bet_id": bet_id,
                    "status": "WON" if is_winning else "LOST",
                    "is_winning": is_winning,
                    "winning_amount": winning_amount,
                    "judged_result": judged_result,
                    "now": now,
                },
            )
        ).fetchone()
        return row is not None

    async def attach_win_transaction(
        self, db: AsyncSession, bet_id: str, transaction_id: int
    ) -> None:
        await db.execute(
            _ATTACH_WIN_TXN_SQL, {"bet_id": bet_id, "transaction_id": transaction_id}
        )
