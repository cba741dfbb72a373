"""Domain models for mk_settlement — per-bet outcomes and the result summary."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class BetOutcomeKind(str, Enum):
    WON = "WON"
    LOST = "LOST"
    SKIPPED = "SKIPPED"   # already processed by someone else, nothing credited
    FAILED = "FAILED"     # rolled back, bet left PENDING for reconciliation


@dataclass
class BetOutcome:
    bet_id: str
    bet_type: str
    stake: int
    kind: BetOutcomeKind
    winning_amount: int = 0
    error: str | None = None


@dataclass
class TypeBreakdown:
    total_bets: int = 0
    total_amount: int = 0
    winning_bets: int = 0
    winning_amount: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_bets": self.total_bets,
            "total_amount": self.total_amount,
            "winning_bets": self.winning_bets,
            "winning_amount": self.winning_amount,
        }


@dataclass
class ResultSummary:
    id: str
    market_id: str
    cycle_date: date | None
    declared_result: str
    result_jodi: str | None
    result_haruf: str | None
    result_crossing: str | None
    method: str
    declared_by: str
    declared_at: datetime
    total_bets: int = 0
    total_staked: int = 0
    total_paid: int = 0
    winning_bets: int = 0
    losing_bets: int = 0
    unsettled_bets: int = 0
    breakdown: dict[str, TypeBreakdown] = field(default_factory=dict)
    processed_at: datetime | None = None

    @property
    def net_margin(self) -> int:
        return self.total_staked - self.total_paid

    def breakdown_json(self) -> dict[str, Any]:
        return {bet_type: b.to_dict() for bet_type, b in self.breakdown.items()}


def aggregate_outcomes(summary: ResultSummary, outcomes: list[BetOutcome]) -> ResultSummary:
    """Fold settled bet outcomes into the summary counters (in place)."""
    for outcome in outcomes:
        if outcome.kind is BetOutcomeKind.SKIPPED:
            continue
        if outcome.kind is BetOutcomeKind.FAILED:
            summary.unsettled_bets += 1
            continue
        bucket = summary.breakdown.setdefault(outcome.bet_type, TypeBreakdown())
        bucket.total_bets += 1
        bucket.total_amount += outcome.stake
        summary.total_bets += 1
        summary.total_staked += outcome.stake
        if outcome.kind is BetOutcomeKind.WON:
            bucket.winning_bets += 1
            bucket.winning_amount += outcome.winning_amount
            summary.winning_bets += 1
            summary.total_paid += outcome.winning_amount
        else:
            summary.losing_bets += 1
    return summary


@dataclass
class PublishedResult:
    """A declared result as shown on the public board; no money figures."""

    market_id: str
    market_name: str
    cycle_date: date | None
    declared_result: str
    result_jodi: str | None
    result_haruf: str | None
    result_crossing: str | None
    method: str
    declared_at: datetime
