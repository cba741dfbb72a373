"""Pydantic schemas for result declaration and reconciliation."""

from datetime import date

from pydantic import BaseModel, Field

from src.mk_settlement.domain.models import PublishedResult, ResultSummary

_TWO_DIGITS = r"^\d{2}$"


class DeclareResultRequest(BaseModel):
    """At least one value is required; missing ones fall back to the others."""

    jodi: str | None = Field(None, pattern=_TWO_DIGITS, examples=["27"])
    haruf: str | None = Field(None, pattern=_TWO_DIGITS)
    crossing: str | None = Field(None, pattern=_TWO_DIGITS)


class DeclareResultResponse(BaseModel):
    market_id: str
    market_name: str
    cycle_date: date | None
    declared_result: str
    result_jodi: str | None
    result_haruf: str | None
    result_crossing: str | None
    method: str
    total_bets: int
    winning_bets: int
    losing_bets: int
    failed_bets: int
    total_staked_paise: int
    total_paid_paise: int
    net_margin_paise: int
    processed: bool

    @classmethod
    def from_summary(cls, summary: ResultSummary, market_name: str) -> "DeclareResultResponse":
        return cls(
            market_id=summary.market_id,
            market_name=market_name,
            cycle_date=summary.cycle_date,
            declared_result=summary.declared_result,
            result_jodi=summary.result_jodi,
            result_haruf=summary.result_haruf,
            result_crossing=summary.result_crossing,
            method=summary.method,
            total_bets=summary.total_bets,
            winning_bets=summary.winning_bets,
            losing_bets=summary.losing_bets,
            failed_bets=summary.unsettled_bets,
            total_staked_paise=summary.total_staked,
            total_paid_paise=summary.total_paid,
            net_margin_paise=summary.net_margin,
            processed=summary.processed_at is not None,
        )


class ReconcileResponse(BaseModel):
    market_id: str
    settled_now: int
    still_pending: int
    processed: bool


class ResultSummaryItem(BaseModel):
    id: str
    cycle_date: date | None
    declared_result: str
    method: str
    declared_by: str
    declared_at: str
    total_bets: int
    total_staked_paise: int
    total_paid_paise: int
    net_margin_paise: int
    unsettled_bets: int
    breakdown: dict[str, dict[str, int]]
    processed_at: str | None

    @classmethod
    def from_domain(cls, s: ResultSummary) -> "ResultSummaryItem":
        return cls(
            id=s.id,
            cycle_date=s.cycle_date,
            declared_result=s.declared_result,
            method=s.method,
            declared_by=s.declared_by,
            declared_at=s.declared_at.isoformat(),
            total_bets=s.total_bets,
            total_staked_paise=s.total_staked,
            total_paid_paise=s.total_paid,
            net_margin_paise=s.net_margin,
            unsettled_bets=s.unsettled_bets,
            breakdown=s.breakdown_json(),
            processed_at=s.processed_at.isoformat() if s.processed_at else None,
        )


class PublishedResultItem(BaseModel):
    market_id: str
    market_name: str
    cycle_date: date | None
    declared_result: str
    jodi: str | None
    haruf: str | None
    crossing: str | None
    method: str
    declared_at: str

    @classmethod
    def from_domain(cls, r: PublishedResult) -> "PublishedResultItem":
        return cls(
            market_id=r.market_id,
            market_name=r.market_name,
            cycle_date=r.cycle_date,
            declared_result=r.declared_result,
            jodi=r.result_jodi,
            haruf=r.result_haruf,
            crossing=r.result_crossing,
            method=r.method,
            declared_at=r.declared_at.isoformat(),
        )


class ResultBoardResponse(BaseModel):
    cycle_date: date
    results: list[PublishedResultItem]
    total: int


class ResultHistoryDay(BaseModel):
    cycle_date: date
    results: list[PublishedResultItem]


class ResultHistoryResponse(BaseModel):
    days: int
    history: list[ResultHistoryDay]
    total_days: int


class MarketLatestResultResponse(BaseModel):
    market_id: str
    market_name: str
    result_declared: bool
    result: PublishedResultItem | None = None
