"""Bet-number validation per bet type.

Returns the canonical number plus the structured bet_data that settlement
reads later, so settlement never has to re-parse free-form user input.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from src.mk_betting.domain.combinatorics import crossing_combinations, only_digits
from src.mk_betting.domain.models import normalize_position, parse_digit_token
from src.mk_common.enums import BetType, DigitPosition
from src.mk_common.errors import InvalidBetNumberError, InvalidBetTypeError

_JODI = re.compile(r"^\d{2}$")
_SINGLE_DIGIT = re.compile(r"^\d$")


@dataclass
class ValidatedNumber:
    bet_type: BetType
    bet_number: str
    bet_data: dict[str, Any] = field(default_factory=dict)
    combinations: list[str] = field(default_factory=list)


def parse_bet_type(raw: str) -> BetType:
    try:
        return BetType(str(raw).strip().upper())
    except ValueError:
        raise InvalidBetTypeError(str(raw)) from None


def _validate_haruf(number: str, position: str | None) -> ValidatedNumber:
    token = number.strip().upper()
    parsed = parse_digit_token(token)
    if parsed is not None:
        digit, resolved = parsed
    elif _SINGLE_DIGIT.match(token):
        digit = token
        resolved = DigitPosition.LEADING
        if position is not None:
            normalized = normalize_position(position)
            if normalized is None:
                raise InvalidBetNumberError(f"unknown digit position {position!r}")
            resolved = normalized
    else:
        raise InvalidBetNumberError(f"haruf expects one digit or A#/B#, got {number!r}")
    return ValidatedNumber(
        bet_type=BetType.HARUF,
        bet_number=token,
        bet_data={"digit": digit, "position": resolved.value},
    )


def validate_bet_number(
    bet_type: BetType,
    number: str,
    position: str | None = None,
    joda_cut: bool = False,
) -> ValidatedNumber:
    if bet_type is BetType.JODI:
        token = number.strip()
        if not _JODI.match(token):
            raise InvalidBetNumberError(f"jodi expects exactly two digits, got {number!r}")
        return ValidatedNumber(bet_type=bet_type, bet_number=token)

    if bet_type is BetType.HARUF:
        return _validate_haruf(number, position)

    digits = only_digits(number)
    combos = crossing_combinations(digits, joda_cut)
    if not combos:
        raise InvalidBetNumberError(
            f"crossing input {number!r} yields no combinations"
        )
    return ValidatedNumber(
        bet_type=bet_type,
        bet_number=digits,
        bet_data={"original_input": number, "base_digits": digits, "joda_cut": joda_cut},
        combinations=combos,
    )
