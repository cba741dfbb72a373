"""Unit tests for per-bet-type win determination."""

import pytest

from src.mk_common.enums import CrossingMatchRule
from src.mk_settlement.domain.declared_result import resolve_declared_result
from src.mk_settlement.domain.win_rules import is_winning_bet, resolve_digit_selection
from tests.factories import make_bet

RESULT_27 = resolve_declared_result(jodi="27")


class TestJodi:
    def test_exact_match_wins(self) -> None:
        assert is_winning_bet(make_bet(bet_type="JODI", bet_number="27"), RESULT_27)

    def test_reversed_pair_loses(self) -> None:
        assert not is_winning_bet(make_bet(bet_type="JODI", bet_number="72"), RESULT_27)


class TestHaruf:
    @pytest.mark.parametrize(
        "number,expected",
        [("B7", True), ("A2", True), ("A7", False), ("B2", False), ("b7", True)],
    )
    def test_compact_notation(self, number: str, expected: bool) -> None:
        bet = make_bet(bet_type="HARUF", bet_number=number)
        assert is_winning_bet(bet, RESULT_27) is expected

    def test_structured_bet_data_takes_precedence(self) -> None:
        bet = make_bet(
            bet_type="HARUF", bet_number="7", bet_data={"digit": "7", "position": "TRAILING"}
        )
        assert is_winning_bet(bet, RESULT_27)

    def test_position_synonyms_in_bet_data(self) -> None:
        bet = make_bet(bet_type="HARUF", bet_number="2", bet_data={"digit": "2", "position": "andhar"})
        assert is_winning_bet(bet, RESULT_27)

    def test_bare_digit_defaults_to_leading(self) -> None:
        assert is_winning_bet(make_bet(bet_type="HARUF", bet_number="2"), RESULT_27)
        assert not is_winning_bet(make_bet(bet_type="HARUF", bet_number="7"), RESULT_27)

    def test_uses_dedicated_haruf_value(self) -> None:
        result = resolve_declared_result(jodi="27", haruf="45")
        assert is_winning_bet(make_bet(bet_type="HARUF", bet_number="A4"), result)
        assert not is_winning_bet(make_bet(bet_type="HARUF", bet_number="A2"), result)

    def test_unparseable_number_has_no_selection(self) -> None:
        assert resolve_digit_selection(make_bet(bet_type="HARUF", bet_number="xx")) is None


class TestCrossing:
    def test_reversible_accepts_both_orders(self) -> None:
        for number in ("27", "72"):
            bet = make_bet(bet_type="CROSSING", bet_number=number)
            assert is_winning_bet(bet, RESULT_27, CrossingMatchRule.REVERSIBLE)
        assert not is_winning_bet(
            make_bet(bet_type="CROSSING", bet_number="12"), RESULT_27, CrossingMatchRule.REVERSIBLE
        )

    def test_exact_rule_rejects_reversal(self) -> None:
        bet = make_bet(bet_type="CROSSING", bet_number="72")
        assert not is_winning_bet(bet, RESULT_27, CrossingMatchRule.EXACT)

    def test_reversible_if_declared(self) -> None:
        bet = make_bet(bet_type="CROSSING", bet_number="72")
        rule = CrossingMatchRule.REVERSIBLE_IF_DECLARED
        assert not is_winning_bet(bet, RESULT_27, rule)
        assert is_winning_bet(bet, resolve_declared_result(jodi="27", crossing="27"), rule)

    def test_rule_accepts_plain_string(self) -> None:
        bet = make_bet(bet_type="CROSSING", bet_number="72")
        assert is_winning_bet(bet, RESULT_27, "REVERSIBLE")  # type: ignore[arg-type]


def test_unknown_bet_type_never_wins() -> None:
    assert not is_winning_bet(make_bet(bet_type="PANA", bet_number="27"), RESULT_27)
