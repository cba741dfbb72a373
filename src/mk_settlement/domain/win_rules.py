"""Win determination — pure functions, no I/O.

Each bet type has one rule. Crossing bets additionally pick a strategy from
CrossingMatchRule, configured per market:

  REVERSIBLE              bet wins on the crossing value or its reversal
  EXACT                   legacy plain equality with the crossing value
  REVERSIBLE_IF_DECLARED  reversal-tolerant only when the operator supplied a
                          dedicated crossing value, else equality with the
                          exact value
"""

from collections.abc import Callable

from src.mk_betting.domain.combinatorics import only_digits, reversal_pairs
from src.mk_betting.domain.models import Bet, normalize_position, parse_digit_token
from src.mk_common.enums import BetType, CrossingMatchRule, DigitPosition
from src.mk_settlement.domain.declared_result import DeclaredResult


def _exact_wins(bet: Bet, result: DeclaredResult) -> bool:
    return bet.bet_number.strip() == result.exact_value


def resolve_digit_selection(bet: Bet) -> tuple[str, DigitPosition] | None:
    """Work out which digit and position a haruf bet is on.

    Order of precedence: structured bet_data, then compact "A5"/"B7"
    notation, then the first character of the raw number at the leading
    position.
    """
    digit = bet.bet_data.get("digit")
    position = normalize_position(bet.bet_data.get("position"))
    if digit is not None and position is not None:
        return str(digit), position

    parsed = parse_digit_token(bet.bet_number)
    if parsed is not None:
        return parsed

    raw = only_digits(bet.bet_number)
    if not raw:
        return None
    return raw[0], DigitPosition.LEADING


def _digit_wins(bet: Bet, result: DeclaredResult) -> bool:
    if result.leading_digit is None:
        return False
    selection = resolve_digit_selection(bet)
    if selection is None:
        return False
    digit, position = selection
    if position is DigitPosition.LEADING:
        return digit == result.leading_digit
    return digit == result.trailing_digit


def _crossing_reversible(bet_number: str, result: DeclaredResult) -> bool:
    return bet_number in reversal_pairs(result.crossing_value)


def _crossing_exact(bet_number: str, result: DeclaredResult) -> bool:
    return bet_number == result.crossing_value


def _crossing_reversible_if_declared(bet_number: str, result: DeclaredResult) -> bool:
    if result.crossing_supplied:
        return _crossing_reversible(bet_number, result)
    return bet_number == result.exact_value


CROSSING_STRATEGIES: dict[CrossingMatchRule, Callable[[str, DeclaredResult], bool]] = {
    CrossingMatchRule.REVERSIBLE: _crossing_reversible,
    CrossingMatchRule.EXACT: _crossing_exact,
    CrossingMatchRule.REVERSIBLE_IF_DECLARED: _crossing_reversible_if_declared,
}


def _crossing_wins(bet: Bet, result: DeclaredResult, rule: CrossingMatchRule) -> bool:
    return CROSSING_STRATEGIES[rule](bet.bet_number.strip(), result)


def is_winning_bet(
    bet: Bet,
    result: DeclaredResult,
    crossing_rule: CrossingMatchRule = CrossingMatchRule.REVERSIBLE,
) -> bool:
    """Decide whether a single bet wins against a resolved declared result.

    Unknown bet types never win.
    """
    bet_type = bet.bet_type
    if bet_type == BetType.JODI:
        return _exact_wins(bet, result)
    if bet_type == BetType.HARUF:
        return _digit_wins(bet, result)
    if bet_type == BetType.CROSSING:
        return _crossing_wins(bet, result, CrossingMatchRule(crossing_rule))
    return False
