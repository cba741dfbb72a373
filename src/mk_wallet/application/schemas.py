"""Pydantic schemas and cursor utilities for mk_wallet API."""

import base64
import binascii
import json

from pydantic import BaseModel, Field

from src.mk_common.enums import BalanceBucket
from src.mk_common.paise import paise_to_display
from src.mk_wallet.domain.models import Transaction, Wallet

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor back to the last seen id. Garbage cursors restart from the top."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AdjustBalanceRequest(BaseModel):
    bucket: BalanceBucket = BalanceBucket.DEPOSIT
    amount_paise: int = Field(..., description="Signed amount; negative debits the bucket")
    description: str = Field(..., min_length=3, max_length=255)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    deposit_balance_paise: int
    winning_balance_paise: int
    bonus_balance_paise: int
    commission_balance_paise: int
    total_balance_paise: int
    total_balance_display: str
    total_bets_paise: int
    total_winnings_paise: int

    @classmethod
    def from_wallet(cls, wallet: Wallet) -> "BalanceResponse":
        return cls(
            user_id=wallet.user_id,
            deposit_balance_paise=wallet.deposit_balance,
            winning_balance_paise=wallet.winning_balance,
            bonus_balance_paise=wallet.bonus_balance,
            commission_balance_paise=wallet.commission_balance,
            total_balance_paise=wallet.total_balance,
            total_balance_display=paise_to_display(wallet.total_balance),
            total_bets_paise=wallet.total_bets,
            total_winnings_paise=wallet.total_winnings,
        )


class TransactionItem(BaseModel):
    id: int
    entry_type: str
    status: str
    amount_paise: int
    amount_display: str
    balance_after_paise: int
    reference_type: str | None
    reference_id: str | None
    market_id: str | None
    description: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, txn: Transaction) -> "TransactionItem":
        return cls(
            id=txn.id,
            entry_type=txn.entry_type,
            status=txn.status,
            amount_paise=txn.amount,
            amount_display=paise_to_display(txn.amount),
            balance_after_paise=txn.balance_after,
            reference_type=txn.reference_type,
            reference_id=txn.reference_id,
            market_id=txn.market_id,
            description=txn.description,
            created_at=txn.created_at.isoformat() if txn.created_at else None,
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool


class AdjustBalanceResponse(BaseModel):
    balance: BalanceResponse
    transaction_id: int
