"""Domain models for mk_wallet — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Wallet:
    user_id: str
    deposit_balance: int      # paise, spendable on bets
    winning_balance: int      # paise, credited by settlement
    bonus_balance: int        # paise
    commission_balance: int   # paise
    total_bets: int           # paise staked, lifetime
    total_winnings: int       # paise won, lifetime
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> int:
        # never stored, so it cannot drift from the buckets
        return (
            self.deposit_balance
            + self.winning_balance
            + self.bonus_balance
            + self.commission_balance
        )


@dataclass
class Transaction:
    id: int                          # BIGSERIAL
    user_id: str
    entry_type: str                  # LedgerEntryType value
    amount: int                      # paise, positive=credit negative=debit
    status: str                      # TransactionStatus value
    balance_after: int               # paise, wallet total after the operation
    reference_type: str | None = None
    reference_id: str | None = None
    market_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
