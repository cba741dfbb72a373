"""Repository Protocol for bets."""

from datetime import date, datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_betting.domain.models import Bet


class BetRepositoryProtocol(Protocol):
    async def insert_bet(self, db: AsyncSession, bet: Bet) -> Bet: ...

    async def get_bet(self, db: AsyncSession, bet_id: str) -> Bet | None: ...

    async def list_user_bets(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        limit: int,
    ) -> list[Bet]: ...

    async def list_pending_bets(
        self, db: AsyncSession, market_id: str, cycle_date: date | None
    ) -> list[Bet]: ...

    async def claim_for_settlement(
        self,
        db: AsyncSession,
        bet_id: str,
        is_winning: bool,
        winning_amount: int,
        judged_result: str,
        now: datetime,
    ) -> bool: ...

    async def attach_win_transaction(
        self, db: AsyncSession, bet_id: str, transaction_id: int
    ) -> None: ...
