"""Unit tests for crossing pair generation."""

from src.mk_betting.domain.combinatorics import crossing_combinations, only_digits, reversal_pairs


class TestCrossingCombinations:
    def test_three_distinct_digits(self) -> None:
        assert crossing_combinations("123") == ["12", "13", "21", "23", "31", "32"]

    def test_repeated_digit_pairs_with_itself_once(self) -> None:
        assert crossing_combinations("112") == ["11", "12", "21"]

    def test_joda_cut_drops_doubles(self) -> None:
        assert crossing_combinations("112", joda_cut=True) == ["12", "21"]

    def test_four_digits_give_twelve_pairs(self) -> None:
        combos = crossing_combinations("1234")
        assert len(combos) == 12
        assert len(set(combos)) == 12

    def test_non_digits_ignored(self) -> None:
        assert crossing_combinations("1-a 2") == ["12", "21"]

    def test_fewer_than_two_digits_is_empty(self) -> None:
        assert crossing_combinations("7") == []
        assert crossing_combinations("") == []

    def test_only_doubles_with_joda_cut_is_empty(self) -> None:
        assert crossing_combinations("11", joda_cut=True) == []


def test_only_digits_handles_none() -> None:
    assert only_digits(None) == ""  # type: ignore[arg-type]


def test_reversal_pairs() -> None:
    assert reversal_pairs("27") == {"27", "72"}
    assert reversal_pairs("33") == {"33"}
    assert reversal_pairs("5") == set()
