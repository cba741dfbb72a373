"""Repository Protocol — dependency inversion for testability.

Every mutation is a single atomic SQL statement followed by one ledger row,
executed inside the caller's transaction. Callers own commit/rollback.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_wallet.domain.models import Transaction, Wallet


class WalletRepositoryProtocol(Protocol):
    async def get_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None: ...

    async def debit_for_bet(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        market_id: str,
        reference_id: str,
        description: str,
    ) -> tuple[Wallet, Transaction]: ...

    async def credit_winnings(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        market_id: str,
        bet_id: str,
        description: str,
    ) -> tuple[Wallet, Transaction]: ...

    async def adjust_balance(
        self,
        db: AsyncSession,
        user_id: str,
        bucket: str,
        amount: int,
        description: str,
        admin_id: str,
    ) -> tuple[Wallet, Transaction]: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[Transaction]: ...
