"""Unit tests for error types and the response envelope."""

from src.mk_common.errors import (
    AppError,
    ErrorCategory,
    InsufficientBalanceError,
    MarketNotOpenError,
    ResultAlreadyDeclaredError,
    StakeOutOfRangeError,
)
from src.mk_common.response import error_response, success_response


def test_app_error_defaults_to_internal() -> None:
    err = AppError(9999, "boom")
    assert err.http_status == 500
    assert err.category == ErrorCategory.INTERNAL
    assert str(err) == "boom"


def test_insufficient_balance_has_its_own_category() -> None:
    err = InsufficientBalanceError(10000, 2500)
    assert err.code == 2001
    assert err.category == ErrorCategory.INSUFFICIENT_BALANCE
    assert (err.required, err.available) == (10000, 2500)


def test_not_open_message_follows_reason() -> None:
    err = MarketNotOpenError("MKT-1", "closed")
    assert err.category == ErrorCategory.CONFLICT
    assert "closed" in err.message


def test_validation_and_conflict_codes() -> None:
    assert StakeOutOfRangeError(5, 10, 100).category == ErrorCategory.VALIDATION
    assert ResultAlreadyDeclaredError("MKT-1").http_status == 409


def test_error_response_carries_category() -> None:
    resp = error_response(2001, "Insufficient balance", ErrorCategory.INSUFFICIENT_BALANCE)
    assert resp.code == 2001
    assert resp.data == {"category": "insufficient_balance"}
    assert error_response(9002, "x").data is None


def test_success_response() -> None:
    resp = success_response({"a": 1})
    assert resp.code == 0
    assert resp.message == "success"
    assert resp.request_id.startswith("req_")
