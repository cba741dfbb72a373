"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class MarketPhase(str, Enum):
    WAITING = "WAITING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    RESULT_DECLARED = "RESULT_DECLARED"


class BetType(str, Enum):
    JODI = "JODI"          # exact two-digit pair
    HARUF = "HARUF"        # single digit at the leading or trailing position
    CROSSING = "CROSSING"  # every ordered pair drawn from a digit set


class BetStatus(str, Enum):
    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class LedgerEntryType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    BET_STAKE = "BET_STAKE"
    WIN_CREDIT = "WIN_CREDIT"
    BONUS = "BONUS"
    COMMISSION = "COMMISSION"
    ADJUSTMENT = "ADJUSTMENT"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class DeclarationMethod(str, Enum):
    MANUAL = "MANUAL"
    AUTOMATIC = "AUTOMATIC"


class CrossingMatchRule(str, Enum):
    """How a settled crossing bet is compared with the declared result."""

    REVERSIBLE = "REVERSIBLE"
    EXACT = "EXACT"
    REVERSIBLE_IF_DECLARED = "REVERSIBLE_IF_DECLARED"


class DigitPosition(str, Enum):
    LEADING = "LEADING"
    TRAILING = "TRAILING"


class BalanceBucket(str, Enum):
    DEPOSIT = "deposit_balance"
    WINNING = "winning_balance"
    BONUS = "bonus_balance"
    COMMISSION = "commission_balance"
