"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Wallet
  3xxx: Market
  4xxx: Bet
  6xxx: Settlement
  9xxx: System

Every error also carries a category so clients can branch without knowing
individual codes (e.g. show "top up" on insufficient_balance).
"""


class ErrorCategory:
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    FORBIDDEN = "forbidden"
    AUTH = "auth"
    INTERNAL = "internal"


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        category: str = ErrorCategory.INTERNAL,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.category = category
        super().__init__(message)


# --- 1xxx: Auth/User ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired credentials", 401, ErrorCategory.AUTH)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403, ErrorCategory.FORBIDDEN)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin privileges required", 403, ErrorCategory.FORBIDDEN)


# --- 2xxx: Wallet ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} paise, available {available} paise",
            422,
            ErrorCategory.INSUFFICIENT_BALANCE,
        )
        self.required = required
        self.available = available


class WalletNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Wallet not found for user {user_id}", 404, ErrorCategory.NOT_FOUND)


class InvalidBalanceBucketError(AppError):
    def __init__(self, bucket: str) -> None:
        super().__init__(2003, f"Unknown balance bucket: {bucket}", 422, ErrorCategory.VALIDATION)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404, ErrorCategory.NOT_FOUND)


class MarketInactiveError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3002, f"Market is not active: {market_id}", 403, ErrorCategory.FORBIDDEN)


class MarketNotOpenError(AppError):
    """Phase rejection: the market is outside its betting window."""

    _MESSAGES = {
        "not_started": "Market has not started yet",
        "closed": "Market is closed for betting",
        "result_declared": "Result already declared for this market",
    }

    def __init__(self, market_id: str, reason: str) -> None:
        text = self._MESSAGES.get(reason, "Market is not available for betting")
        super().__init__(3003, f"{text}: {market_id}", 409, ErrorCategory.CONFLICT)
        self.reason = reason


class MarketNotAcceptingError(AppError):
    """Acceptance-guard rejection (manual close, past end instant, flag off)."""

    def __init__(self, market_id: str) -> None:
        super().__init__(
            3004, f"Market is not accepting bets: {market_id}", 403, ErrorCategory.FORBIDDEN
        )


class MarketNameExistsError(AppError):
    def __init__(self, name: str) -> None:
        super().__init__(3005, f"Market name already exists: {name}", 409, ErrorCategory.CONFLICT)


class MarketHasBetsError(AppError):
    def __init__(self, market_id: str, bets: int) -> None:
        super().__init__(
            3006,
            f"Market {market_id} has {bets} bets on record; deactivate it instead",
            409,
            ErrorCategory.CONFLICT,
        )


class InvalidMarketConfigError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3007, f"Invalid market configuration: {detail}", 422, ErrorCategory.VALIDATION)


# --- 4xxx: Bet ---

class InvalidBetTypeError(AppError):
    def __init__(self, bet_type: str) -> None:
        super().__init__(4001, f"Invalid bet type: {bet_type}", 422, ErrorCategory.VALIDATION)


class StakeOutOfRangeError(AppError):
    def __init__(self, stake: int, min_bet: int, max_bet: int) -> None:
        super().__init__(
            4002,
            f"Stake {stake} paise outside allowed range [{min_bet}, {max_bet}]",
            422,
            ErrorCategory.VALIDATION,
        )


class InvalidBetNumberError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4003, f"Invalid bet number: {detail}", 422, ErrorCategory.VALIDATION)


class BetNotFoundError(AppError):
    def __init__(self, bet_id: str) -> None:
        super().__init__(4004, f"Bet not found: {bet_id}", 404, ErrorCategory.NOT_FOUND)


# --- 6xxx: Settlement ---

class ResultAlreadyDeclaredError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(
            6001, f"Result already declared for market {market_id}", 409, ErrorCategory.CONFLICT
        )


class MarketNotClosedError(AppError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(
            6002,
            f"Market {market_id} must be CLOSED to declare a result (status={status})",
            409,
            ErrorCategory.CONFLICT,
        )


class InvalidResultError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6003, f"Invalid result: {detail}", 422, ErrorCategory.VALIDATION)


class ResultNotDeclaredError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(
            6004, f"No result declared for market {market_id}", 409, ErrorCategory.CONFLICT
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500, ErrorCategory.INTERNAL)
