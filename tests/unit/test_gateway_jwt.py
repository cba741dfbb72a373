"""Unit tests for JWT access-token verification."""

from datetime import timedelta

import pytest
from jose import jwt

from config.settings import settings
from src.mk_common.errors import InvalidCredentialsError
from src.mk_gateway.auth.jwt_handler import create_access_token, decode_access_token


def test_access_token_claims() -> None:
    payload = jwt.get_unverified_claims(create_access_token("user-123"))
    assert payload["sub"] == "user-123"
    assert payload["type"] == "access"


def test_decode_valid_token() -> None:
    assert decode_access_token(create_access_token("user-abc"))["sub"] == "user-abc"


def test_expired_token_rejected() -> None:
    token = create_access_token("user-abc", expires_in=timedelta(seconds=-1))
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_wrong_signature_rejected() -> None:
    token = jwt.encode({"sub": "user-abc", "type": "access"}, "other-secret", algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_refresh_token_rejected() -> None:
    token = jwt.encode(
        {"sub": "user-abc", "type": "refresh"}, settings.JWT_SECRET, algorithm="HS256"
    )
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)
