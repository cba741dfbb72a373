"""WalletRepository — concrete implementation of WalletRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows means either the wallet is missing or a conditional
guard (sufficient balance) failed; the method then tells the two apart.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import BalanceBucket, LedgerEntryType, TransactionStatus
from src.mk_common.errors import (
    InsufficientBalanceError,
    InternalError,
    InvalidBalanceBucketError,
    WalletNotFoundError,
)
from src.mk_wallet.domain.models import Transaction, Wallet

_WALLET_COLUMNS = """
    user_id, deposit_balance, winning_balance, bonus_balance, commission_balance,
    total_bets, total_winnings, version, created_at, updated_at
"""

_GET_WALLET_SQL = text(f"""
    SELECT {_WALLET_COLUMNS}
    FROM wallets
    WHERE user_id = :user_id
""")

# Conditional debit: the WHERE guard is what serialises concurrent bets on
# the same wallet. Never read-then-write.
_DEBIT_FOR_BET_SQL = text(f"""
    UPDATE wallets
    SET deposit_balance = deposit_balance - :amount,
        total_bets = total_bets + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND deposit_balance >= :amount
    RETURNING {_WALLET_COLUMNS}
""")

_CREDIT_WINNINGS_SQL = text(f"""
    UPDATE wallets
    SET winning_balance = winning_balance + :amount,
        total_winnings = total_winnings + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_WALLET_COLUMNS}
""")


def _adjust_sql(column: str):  # type: ignore[no-untyped-def]
    return text(f"""
        UPDATE wallets
        SET {column} = {column} + :amount,
            version = version + 1,
            updated_at = NOW()
        WHERE user_id = :user_id AND {column} + :amount >= 0
        RETURNING {_WALLET_COLUMNS}
    """)


# One pre-built statement per whitelisted column; bucket names never reach SQL raw.
_ADJUST_SQL = {bucket.value: _adjust_sql(bucket.value) for bucket in BalanceBucket}

_INSERT_TRANSACTION_SQL = text("""
    INSERT INTO transactions
        (user_id, entry_type, amount, status, balance_after,
         reference_type, reference_id, market_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :status, :balance_after,
         :reference_type, :reference_id, :market_id, :description)
    RETURNING id, user_id, entry_type, amount, status, balance_after,
              reference_type, reference_id, market_id, description, created_at
""")

_LIST_TRANSACTIONS_SQL = text("""
    SELECT id, user_id, entry_type, amount, status, balance_after,
           reference_type, reference_id, market_id, description, created_at
    FROM transactions
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:entry_type AS VARCHAR) IS NULL OR entry_type = :entry_type)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_wallet(row: object) -> Wallet:
    return Wallet(
        user_id=row.user_id,  # type: ignore[attr-defined]
        deposit_balance=row.deposit_balance,  # type: ignore[attr-defined]
        winning_balance=row.winning_balance,  # type: ignore[attr-defined]
        bonus_balance=row.bonus_balance,  # type: ignore[attr-defined]
        commission_balance=row.commission_balance,  # type: ignore[attr-defined]
        total_bets=row.total_bets,  # type: ignore[attr-defined]
        total_winnings=row.total_winnings,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class WalletRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None:
        result = await db.execute(_GET_WALLET_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_wallet(row) if row else None

    async def _append_transaction(
        self,
        db: AsyncSession,
        wallet: Wallet,
        entry_type: LedgerEntryType,
        amount: int,
        reference_type: str | None,
        reference_id: str | None,
        market_id: str | None,
        description: str | None,
    ) -> Transaction:
        result = await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "user_id": wallet.user_id,
                "entry_type": entry_type.value,
                "amount": amount,
                "status": TransactionStatus.COMPLETED.value,
                "balance_after": wallet.total_balance,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "market_id": market_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_transaction(row)

    async def _raise_for_missing_or_short(
        self, db: AsyncSession, user_id: str, amount: int, column: str
    ) -> None:
        wallet = await self.get_wallet(db, user_id)
        if wallet is None:
            raise WalletNotFoundError(user_id)
        raise InsufficientBalanceError(amount, getattr(wallet, column))

    async def debit_for_bet(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        market_id: str,
        reference_id: str,
        description: str,
    ) -> tuple[Wallet, Transaction]:
        result = await db.execute(_DEBIT_FOR_BET_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            await self._raise_for_missing_or_short(db, user_id, amount, "deposit_balance")
        wallet = _row_to_wallet(row)
        txn = await self._append_transaction(
            db,
            wallet,
            LedgerEntryType.BET_STAKE,
            -amount,
            reference_type="BET",
            reference_id=reference_id,
            market_id=market_id,
            description=description,
        )
        return wallet, txn

    async def credit_winnings(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        market_id: str,
        bet_id: str,
        description: str,
    ) -> tuple[Wallet, Transaction]:
        result = await db.execute(_CREDIT_WINNINGS_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise WalletNotFoundError(user_id)
        wallet = _row_to_wallet(row)
        txn = await self._append_transaction(
            db,
            wallet,
            LedgerEntryType.WIN_CREDIT,
            amount,
            reference_type="BET",
            reference_id=bet_id,
            market_id=market_id,
            description=description,
        )
        return wallet, txn

    async def adjust_balance(
        self,
        db: AsyncSession,
        user_id: str,
        bucket: str,
        amount: int,
        description: str,
        admin_id: str,
    ) -> tuple[Wallet, Transaction]:
        statement = _ADJUST_SQL.get(bucket)
        if statement is None:
            raise InvalidBalanceBucketError(bucket)
        result = await db.execute(statement, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            await self._raise_for_missing_or_short(db, user_id, -amount, bucket)
        wallet = _row_to_wallet(row)
        txn = await self._append_transaction(
            db,
            wallet,
            LedgerEntryType.ADJUSTMENT,
            amount,
            reference_type="ADMIN",
            reference_id=admin_id,
            market_id=None,
            description=description,
        )
        return wallet, txn

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_TRANSACTIONS_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_transaction(row) for row in result.fetchall()]
