"""Domain models for mk_betting — pure dataclasses plus digit-position parsing."""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from src.mk_common.enums import DigitPosition

_LEADING_SYNONYMS = frozenset({"leading", "first", "start", "a", "a1", "andhar"})
_TRAILING_SYNONYMS = frozenset({"trailing", "last", "end", "b", "b2", "bahar"})
_DIGIT_TOKEN = re.compile(r"^([AB])(\d)$", re.IGNORECASE)


def normalize_position(value: object) -> DigitPosition | None:
    """Map any accepted position spelling to DigitPosition; None if unrecognised."""
    if isinstance(value, DigitPosition):
        return value
    if not isinstance(value, str):
        return None
    token = value.strip().lower()
    if token in _LEADING_SYNONYMS:
        return DigitPosition.LEADING
    if token in _TRAILING_SYNONYMS:
        return DigitPosition.TRAILING
    return None


def parse_digit_token(token: str) -> tuple[str, DigitPosition] | None:
    """Parse compact haruf notation: "A5" -> ("5", LEADING), "B7" -> ("7", TRAILING)."""
    match = _DIGIT_TOKEN.match((token or "").strip())
    if match is None:
        return None
    side, digit = match.groups()
    position = DigitPosition.LEADING if side.upper() == "A" else DigitPosition.TRAILING
    return digit, position


@dataclass
class Bet:
    id: str
    user_id: str
    market_id: str
    bet_type: str              # BetType value
    bet_number: str
    stake: int                 # paise
    potential_payout: int      # paise
    status: str                # BetStatus value
    bet_data: dict[str, Any] = field(default_factory=dict)
    is_winning: bool | None = None
    winning_amount: int = 0
    judged_result: str | None = None
    result_processed_at: datetime | None = None
    stake_transaction_id: int | None = None
    win_transaction_id: int | None = None
    cycle_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def group_id(self) -> str | None:
        return self.bet_data.get("group_id")
