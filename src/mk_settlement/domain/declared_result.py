"""Canonical declared result and the single place where fallback precedence lives.

An operator may declare up to three values (jodi / haruf / crossing). Most
markets only get one. Every bet type then reads a *resolved* value:

    fallback            = first non-empty of (jodi, haruf, crossing)
    exact_value         = jodi or fallback
    digit_source_value  = haruf or exact_value
    crossing_value      = crossing or exact_value
"""

import re
from dataclasses import dataclass

from src.mk_common.errors import InvalidResultError

_TWO_DIGITS = re.compile(r"^\d{2}$")


@dataclass(frozen=True)
class DeclaredResult:
    exact_value: str
    digit_source_value: str
    crossing_value: str
    crossing_supplied: bool
    jodi: str | None = None
    haruf: str | None = None
    crossing: str | None = None

    @property
    def canonical(self) -> str:
        return self.exact_value

    @property
    def leading_digit(self) -> str | None:
        return self.digit_source_value[0] if len(self.digit_source_value) >= 2 else None

    @property
    def trailing_digit(self) -> str | None:
        return self.digit_source_value[1] if len(self.digit_source_value) >= 2 else None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_declared_result(
    jodi: str | None = None,
    haruf: str | None = None,
    crossing: str | None = None,
) -> DeclaredResult:
    """Validate operator input and resolve the per-bet-type comparison values.

    Raises InvalidResultError when nothing is supplied or a supplied value is
    not exactly two digits.
    """
    jodi, haruf, crossing = _clean(jodi), _clean(haruf), _clean(crossing)
    for label, value in (("jodi", jodi), ("haruf", haruf), ("crossing", crossing)):
        if value is not None and not _TWO_DIGITS.match(value):
            raise InvalidResultError(f"{label} must be exactly two digits, got {value!r}")

    fallback = jodi or haruf or crossing
    if fallback is None:
        raise InvalidResultError("at least one of jodi, haruf or crossing is required")

    exact_value = jodi or fallback
    return DeclaredResult(
        exact_value=exact_value,
        digit_source_value=haruf or exact_value,
        crossing_value=crossing or exact_value,
        crossing_supplied=crossing is not None,
        jodi=jodi,
        haruf=haruf,
        crossing=crossing,
    )
