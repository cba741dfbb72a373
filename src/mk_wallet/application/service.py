"""WalletApplicationService — read-side balance/ledger views plus admin adjustments."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.errors import WalletNotFoundError
from src.mk_wallet.application.schemas import (
    AdjustBalanceResponse,
    BalanceResponse,
    TransactionItem,
    TransactionListResponse,
    cursor_decode,
    cursor_encode,
)
from src.mk_wallet.domain.repository import WalletRepositoryProtocol
from src.mk_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class WalletApplicationService:
    def __init__(self, repo: WalletRepositoryProtocol | None = None) -> None:
        self._repo: WalletRepositoryProtocol = repo or WalletRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        wallet = await self._repo.get_wallet(db, user_id)
        if wallet is None:
            raise WalletNotFoundError(user_id)
        return BalanceResponse.from_wallet(wallet)

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> TransactionListResponse:
        # Fetch one extra row to know whether another page exists
        rows = await self._repo.list_transactions(
            db, user_id, cursor_decode(cursor), limit + 1, entry_type
        )
        has_more = len(rows) > limit
        page = rows[:limit]
        return TransactionListResponse(
            items=[TransactionItem.from_domain(txn) for txn in page],
            next_cursor=cursor_encode(page[-1].id) if has_more else None,
            has_more=has_more,
        )

    async def adjust_balance(
        self,
        db: AsyncSession,
        user_id: str,
        bucket: str,
        amount: int,
        description: str,
        admin_id: str,
    ) -> AdjustBalanceResponse:
        try:
            wallet, txn = await self._repo.adjust_balance(
                db, user_id, bucket, amount, description, admin_id
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Admin %s adjusted %s of user %s by %d paise (txn=%s)",
            admin_id, bucket, user_id, amount, txn.id,
        )
        return AdjustBalanceResponse(
            balance=BalanceResponse.from_wallet(wallet), transaction_id=txn.id
        )
