"""Domain models for mk_market — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class Market:
    id: str
    name: str
    market_type: str              # BetType value, nominal only
    is_active: bool
    start_time: str               # "HH:MM" local
    end_time: str
    result_time: str
    timezone: str
    current_status: str           # MarketPhase value, persisted by sweeper/settlement
    accepting_bets: bool
    min_bet: int                  # paise
    max_bet: int                  # paise
    jodi_multiplier: int
    haruf_multiplier: int
    crossing_multiplier: int
    crossing_rule: str            # CrossingMatchRule value
    start_at_utc: datetime | None = None
    end_at_utc: datetime | None = None
    result_at_utc: datetime | None = None
    cycle_date: date | None = None
    forced_status: str | None = None
    auto_closed_at: datetime | None = None
    manually_closed_at: datetime | None = None
    manually_closed_by: str | None = None
    last_status_change: datetime | None = None
    declared_result: str | None = None
    result_jodi: str | None = None
    result_haruf: str | None = None
    result_crossing: str | None = None
    result_declared_at: datetime | None = None
    result_declared_by: str | None = None
    result_method: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_declared_result(self) -> bool:
        return self.declared_result is not None

    def multiplier_for(self, bet_type: str) -> int:
        return {
            "JODI": self.jodi_multiplier,
            "HARUF": self.haruf_multiplier,
            "CROSSING": self.crossing_multiplier,
        }[bet_type]


@dataclass
class ClosedMarket:
    """Row returned by a close sweep: just enough for logging and reporting."""

    id: str
    name: str
    closed_at: datetime
