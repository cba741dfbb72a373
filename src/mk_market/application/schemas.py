"""Pydantic schemas for mk_market API."""

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from config.settings import settings
from src.mk_common.enums import BetType, CrossingMatchRule, MarketPhase
from src.mk_common.paise import paise_to_display
from src.mk_market.domain.models import Market

_HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"

# ---------------------------------------------------------------------------
# Request schemas (admin)
# ---------------------------------------------------------------------------


class MarketCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=64)
    market_type: BetType = BetType.JODI
    start_time: str = Field(..., pattern=_HHMM, examples=["08:00"])
    end_time: str = Field(..., pattern=_HHMM, examples=["14:40"])
    result_time: str = Field(..., pattern=_HHMM, examples=["15:15"])
    timezone: str = Field(default_factory=lambda: settings.MARKET_TIMEZONE)
    min_bet_paise: int = Field(default_factory=lambda: settings.DEFAULT_MIN_BET_PAISE, gt=0)
    max_bet_paise: int = Field(default_factory=lambda: settings.DEFAULT_MAX_BET_PAISE, gt=0)
    jodi_multiplier: int = Field(95, gt=0)
    haruf_multiplier: int = Field(9, gt=0)
    crossing_multiplier: int = Field(95, gt=0)
    crossing_rule: CrossingMatchRule = CrossingMatchRule.REVERSIBLE
    is_active: bool = True

    @model_validator(mode="after")
    def _check_limits(self) -> "MarketCreateRequest":
        if self.min_bet_paise > self.max_bet_paise:
            raise ValueError("min_bet_paise must not exceed max_bet_paise")
        return self


class MarketUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=64)
    market_type: BetType | None = None
    start_time: str | None = Field(None, pattern=_HHMM)
    end_time: str | None = Field(None, pattern=_HHMM)
    result_time: str | None = Field(None, pattern=_HHMM)
    timezone: str | None = None
    min_bet_paise: int | None = Field(None, gt=0)
    max_bet_paise: int | None = Field(None, gt=0)
    jodi_multiplier: int | None = Field(None, gt=0)
    haruf_multiplier: int | None = Field(None, gt=0)
    crossing_multiplier: int | None = Field(None, gt=0)
    crossing_rule: CrossingMatchRule | None = None
    is_active: bool | None = None


class ForceStatusRequest(BaseModel):
    """`status=None` clears an existing override."""

    status: MarketPhase | None


class NextCycleRequest(BaseModel):
    cycle_date: date | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class MarketStatusResponse(BaseModel):
    market_id: str
    name: str
    phase: MarketPhase
    persisted_status: str
    forced_status: str | None
    accepting_bets: bool
    time_remaining: str
    cycle_date: date | None
    end_at_utc: str | None
    declared_result: str | None


class MarketDetail(BaseModel):
    id: str
    name: str
    market_type: str
    is_active: bool
    start_time: str
    end_time: str
    result_time: str
    timezone: str
    cycle_date: date | None
    start_at_utc: str | None
    end_at_utc: str | None
    result_at_utc: str | None
    current_status: str
    forced_status: str | None
    accepting_bets: bool
    min_bet_paise: int
    min_bet_display: str
    max_bet_paise: int
    max_bet_display: str
    jodi_multiplier: int
    haruf_multiplier: int
    crossing_multiplier: int
    crossing_rule: str
    declared_result: str | None
    result_jodi: str | None
    result_haruf: str | None
    result_crossing: str | None
    result_declared_at: str | None
    result_declared_by: str | None
    result_method: str | None
    auto_closed_at: str | None
    manually_closed_at: str | None
    manually_closed_by: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        return cls(
            id=m.id,
            name=m.name,
            market_type=m.market_type,
            is_active=m.is_active,
            start_time=m.start_time,
            end_time=m.end_time,
            result_time=m.result_time,
            timezone=m.timezone,
            cycle_date=m.cycle_date,
            start_at_utc=_iso(m.start_at_utc),
            end_at_utc=_iso(m.end_at_utc),
            result_at_utc=_iso(m.result_at_utc),
            current_status=m.current_status,
            forced_status=m.forced_status,
            accepting_bets=m.accepting_bets,
            min_bet_paise=m.min_bet,
            min_bet_display=paise_to_display(m.min_bet),
            max_bet_paise=m.max_bet,
            max_bet_display=paise_to_display(m.max_bet),
            jodi_multiplier=m.jodi_multiplier,
            haruf_multiplier=m.haruf_multiplier,
            crossing_multiplier=m.crossing_multiplier,
            crossing_rule=m.crossing_rule,
            declared_result=m.declared_result,
            result_jodi=m.result_jodi,
            result_haruf=m.result_haruf,
            result_crossing=m.result_crossing,
            result_declared_at=_iso(m.result_declared_at),
            result_declared_by=m.result_declared_by,
            result_method=m.result_method,
            auto_closed_at=_iso(m.auto_closed_at),
            manually_closed_at=_iso(m.manually_closed_at),
            manually_closed_by=m.manually_closed_by,
        )


class MarketListItem(BaseModel):
    id: str
    name: str
    market_type: str
    start_time: str
    end_time: str
    result_time: str
    phase: MarketPhase
    accepting_bets: bool
    time_remaining: str
    declared_result: str | None


class MarketListResponse(BaseModel):
    items: list[MarketListItem]


class PendingResultItem(BaseModel):
    market_id: str
    name: str
    end_at_utc: str | None
    auto_result_at: str | None
    hours_remaining: float | None
    is_overdue: bool


class PendingResultsResponse(BaseModel):
    items: list[PendingResultItem]
    auto_result_enabled: bool
