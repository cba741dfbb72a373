"""Crossing pair generation.

A crossing bet on "123" is a bundle of every two-digit number that can be
formed by picking two *different positions* of the input: 12, 13, 21, 23,
31, 32. Repeated digits in the input can still pair with each other
("112" -> 11, 12, 21) unless joda-cut is requested, which drops doubles.
"""

import re

_NON_DIGIT = re.compile(r"\D")


def only_digits(raw: str) -> str:
    return _NON_DIGIT.sub("", raw or "")


def crossing_combinations(digits: str, joda_cut: bool = False) -> list[str]:
    """Return the ordered, de-duplicated two-digit pairs for a crossing input.

    Non-digit characters are ignored. Inputs with fewer than two digits
    produce an empty list.
    """
    clean = only_digits(digits)
    if len(clean) < 2:
        return []

    seen: set[str] = set()
    combos: list[str] = []
    for i, first in enumerate(clean):
        for j, second in enumerate(clean):
            if i == j:
                continue
            if joda_cut and first == second:
                continue
            pair = first + second
            if pair not in seen:
                seen.add(pair)
                combos.append(pair)
    return combos


def reversal_pairs(value: str) -> set[str]:
    """Pairs a declared two-digit crossing result answers to: itself and its reversal."""
    clean = only_digits(value)
    if len(clean) < 2:
        return set()
    return set(crossing_combinations(clean[:2]))
