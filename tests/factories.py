"""Builders and in-memory fakes shared by the unit tests."""

import asyncio
from dataclasses import replace
from datetime import UTC, date, datetime
from itertools import count
from unittest.mock import AsyncMock, MagicMock

from src.mk_betting.domain.models import Bet
from src.mk_common.errors import InsufficientBalanceError, WalletNotFoundError
from src.mk_market.domain.models import Market
from src.mk_wallet.domain.models import Transaction, Wallet

# 2026-10-17 in IST (UTC+05:30)
CYCLE_DATE = date(2026, 10, 17)


def ist(hour: int, minute: int, day: int = 17) -> datetime:
    """UTC instant for an IST wall-clock time in October 2026."""
    total = hour * 60 + minute - 330
    d = day
    if total < 0:
        total += 1440
        d -= 1
    return datetime(2026, 10, d, total // 60, total % 60, tzinfo=UTC)


def make_market(**kwargs) -> Market:
    """Delhi Bazar: 08:00 - 14:40, result 15:15 IST."""
    defaults = dict(
        id="MKT-DELHI",
        name="Delhi Bazar",
        market_type="JODI",
        is_active=True,
        start_time="08:00",
        end_time="14:40",
        result_time="15:15",
        timezone="Asia/Kolkata",
        current_status="OPEN",
        accepting_bets=True,
        min_bet=1000,
        max_bet=1000000,
        jodi_multiplier=95,
        haruf_multiplier=9,
        crossing_multiplier=95,
        crossing_rule="REVERSIBLE",
        start_at_utc=ist(8, 0),
        end_at_utc=ist(14, 40),
        result_at_utc=ist(15, 15),
        cycle_date=CYCLE_DATE,
    )
    defaults.update(kwargs)
    return Market(**defaults)


def make_bet(**kwargs) -> Bet:
    defaults = dict(
        id="BET-1",
        user_id="user-1",
        market_id="MKT-DELHI",
        bet_type="JODI",
        bet_number="27",
        stake=10000,
        potential_payout=950000,
        status="PENDING",
        cycle_date=CYCLE_DATE,
    )
    defaults.update(kwargs)
    return Bet(**defaults)


def make_wallet(**kwargs) -> Wallet:
    defaults = dict(
        user_id="user-1",
        deposit_balance=100000,
        winning_balance=0,
        bonus_balance=0,
        commission_balance=0,
        total_bets=0,
        total_winnings=0,
        version=0,
    )
    defaults.update(kwargs)
    return Wallet(**defaults)


def make_transaction(**kwargs) -> Transaction:
    defaults = dict(
        id=1,
        user_id="user-1",
        entry_type="BET_STAKE",
        amount=-10000,
        status="COMPLETED",
        balance_after=90000,
        created_at=datetime(2026, 10, 17, 4, 0, tzinfo=UTC),
    )
    defaults.update(kwargs)
    return Transaction(**defaults)


class FakeSavepoint:
    """Restores the given in-memory stores when the block raises, like ROLLBACK TO SAVEPOINT."""

    def __init__(self, stores) -> None:
        self._stores = stores
        self._saved: list = []

    async def __aenter__(self):
        self._saved = [store.snapshot() for store in self._stores]
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            for store, state in zip(self._stores, self._saved):
                store.restore(state)
        return False


def mock_db(*stores) -> MagicMock:
    """AsyncSession stand-in whose begin_nested() works as `async with`."""
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.begin_nested = MagicMock(side_effect=lambda: FakeSavepoint(stores))
    return db


class FakeWalletRepository:
    """In-memory wallets. A lock stands in for the row lock of the guarded UPDATE."""

    def __init__(self, *wallets: Wallet) -> None:
        self.wallets = {w.user_id: replace(w) for w in wallets}
        self.transactions: list[Transaction] = []
        self.fail_credit_for: set[str] = set()
        self._ids = count(1)
        self._lock = asyncio.Lock()

    def snapshot(self):
        return {k: replace(w) for k, w in self.wallets.items()}, list(self.transactions)

    def restore(self, state) -> None:
        self.wallets, self.transactions = state

    def _record(self, wallet: Wallet, entry_type: str, amount: int, **kwargs) -> Transaction:
        txn = Transaction(
            id=next(self._ids),
            user_id=wallet.user_id,
            entry_type=entry_type,
            amount=amount,
            status="COMPLETED",
            balance_after=wallet.total_balance,
            **kwargs,
        )
        self.transactions.append(txn)
        return txn

    async def get_wallet(self, db, user_id):
        return self.wallets.get(user_id)

    async def debit_for_bet(self, db, user_id, amount, market_id, reference_id, description):
        async with self._lock:
            wallet = self.wallets.get(user_id)
            if wallet is None:
                raise WalletNotFoundError(user_id)
            # yield inside the critical section so concurrent callers interleave
            await asyncio.sleep(0)
            if wallet.deposit_balance < amount:
                raise InsufficientBalanceError(amount, wallet.deposit_balance)
            wallet.deposit_balance -= amount
            wallet.total_bets += amount
            txn = self._record(
                wallet, "BET_STAKE", -amount,
                reference_type="BET", reference_id=reference_id, market_id=market_id,
                description=description,
            )
            return replace(wallet), txn

    async def credit_winnings(self, db, user_id, amount, market_id, bet_id, description):
        if user_id in self.fail_credit_for or user_id not in self.wallets:
            raise WalletNotFoundError(user_id)
        wallet = self.wallets[user_id]
        wallet.winning_balance += amount
        wallet.total_winnings += amount
        txn = self._record(
            wallet, "WIN_CREDIT", amount,
            reference_type="BET", reference_id=bet_id, market_id=market_id,
            description=description,
        )
        return replace(wallet), txn

    async def adjust_balance(self, db, user_id, bucket, amount, description, admin_id):
        raise NotImplementedError

    async def list_transactions(self, db, user_id, cursor_id, limit, entry_type):
        return [t for t in reversed(self.transactions) if t.user_id == user_id][:limit]


class FakeBetRepository:
    """In-memory bets with the same PENDING-only claim rule as the SQL."""

    def __init__(self, *bets: Bet) -> None:
        self.bets = {b.id: replace(b) for b in bets}

    def snapshot(self):
        return {k: replace(b) for k, b in self.bets.items()}

    def restore(self, state) -> None:
        self.bets = state

    async def insert_bet(self, db, bet):
        self.bets[bet.id] = replace(bet)
        return bet

    async def get_bet(self, db, bet_id):
        return self.bets.get(bet_id)

    async def list_user_bets(self, db, user_id, market_id, status, limit):
        return [b for b in self.bets.values() if b.user_id == user_id][:limit]

    async def list_pending_bets(self, db, market_id, cycle_date):
        return [
            replace(b) for b in self.bets.values()
            if b.market_id == market_id
            and b.status == "PENDING"
            and b.result_processed_at is None
            and b.cycle_date == cycle_date
        ]

    async def claim_for_settlement(self, db, bet_id, is_winning, winning_amount, judged_result, now):
        bet = self.bets[bet_id]
        if bet.status != "PENDING" or bet.result_processed_at is not None:
            return False
        bet.status = "WON" if is_winning else "LOST"
        bet.is_winning = is_winning
        bet.winning_amount = winning_amount
        bet.judged_result = judged_result
        bet.result_processed_at = now
        return True

    async def attach_win_transaction(self, db, bet_id, transaction_id):
        self.bets[bet_id].win_transaction_id = transaction_id
