"""Market lifecycle: phase computation and schedule arithmetic.

Schedules are local wall-clock "HH:MM" strings that may cross midnight
(Gali closes 23:10 and declares 00:30; Disawer opens 08:00 and closes 03:30
the next morning). All of that is handled by `schedule_minutes` and
`cycle_minute`, which place start/end/result and "now" on one continuous
minute axis starting at the cycle's local midnight:

    end    < start  ->  end    += 1440
    result < end    ->  result += 1440

A wall-clock minute before `start` that still falls before the (shifted)
result belongs to the previous day's cycle and is shifted by +1440 too.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from src.mk_common.datetime_utils import ensure_utc, market_zone, to_local
from src.mk_common.enums import MarketPhase
from src.mk_common.errors import InvalidMarketConfigError
from src.mk_market.domain.models import Market

MINUTES_PER_DAY = 1440


@dataclass(frozen=True)
class ScheduleMinutes:
    start: int
    end: int
    result: int


def parse_hhmm(value: str) -> int:
    """'14:40' -> 880. Raises InvalidMarketConfigError on malformed input."""
    try:
        hours_str, minutes_str = value.strip().split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError):
        raise InvalidMarketConfigError(f"time must be HH:MM, got {value!r}") from None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise InvalidMarketConfigError(f"time out of range: {value!r}")
    return hours * 60 + minutes


def schedule_minutes(start_time: str, end_time: str, result_time: str) -> ScheduleMinutes:
    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    result = parse_hhmm(result_time)
    if end < start:
        end += MINUTES_PER_DAY
    if result < end:
        result += MINUTES_PER_DAY
    return ScheduleMinutes(start=start, end=end, result=result)


def market_schedule(market: Market) -> ScheduleMinutes:
    return schedule_minutes(market.start_time, market.end_time, market.result_time)


def cycle_minute(schedule: ScheduleMinutes, local_minute: int) -> int:
    """Place a wall-clock minute-of-day on the schedule's continuous axis."""
    if local_minute < schedule.start and local_minute + MINUTES_PER_DAY <= schedule.result:
        return local_minute + MINUTES_PER_DAY
    return local_minute


def _local(market: Market, now: datetime) -> datetime:
    return to_local(now, market.timezone)


def _local_minute(local_now: datetime) -> int:
    return local_now.hour * 60 + local_now.minute


def phase_at_minute(schedule: ScheduleMinutes, minute: int) -> MarketPhase:
    if schedule.start <= minute < schedule.end:
        return MarketPhase.OPEN
    if schedule.end <= minute < schedule.result:
        return MarketPhase.CLOSED
    if minute >= schedule.result:
        return MarketPhase.RESULT_DECLARED
    return MarketPhase.WAITING


def compute_phase(market: Market, now: datetime) -> MarketPhase:
    """Phase of a market at `now`.

    An operator-forced status always wins on an active market; an inactive
    market is always WAITING.
    """
    if not market.is_active:
        return MarketPhase.WAITING
    if market.forced_status:
        return MarketPhase(market.forced_status)
    schedule = market_schedule(market)
    minute = cycle_minute(schedule, _local_minute(_local(market, now)))
    return phase_at_minute(schedule, minute)


def is_accepting_bets(market: Market, now: datetime, phase: MarketPhase | None = None) -> bool:
    """Composite guard; any one of the five conditions rejects the bet."""
    if phase is None:
        phase = compute_phase(market, now)
    if phase is not MarketPhase.OPEN:
        return False
    if not market.accepting_bets:
        return False
    if market.end_at_utc is not None and ensure_utc(now) >= ensure_utc(market.end_at_utc):
        return False
    if market.manually_closed_at is not None:
        return False
    if market.has_declared_result:
        return False
    return True


def format_minutes(total: int) -> str:
    """125 -> '2h 5m', 60 -> '1h', 35 -> '35m'."""
    total = max(total, 0)
    hours, minutes = divmod(total, 60)
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


def time_remaining(market: Market, now: datetime, phase: MarketPhase | None = None) -> str:
    if phase is None:
        phase = compute_phase(market, now)
    schedule = market_schedule(market)
    minute = cycle_minute(schedule, _local_minute(_local(market, now)))

    if phase is MarketPhase.OPEN:
        return f"{format_minutes(schedule.end - minute)} to close"
    if phase is MarketPhase.CLOSED:
        return f"Result in {format_minutes(schedule.result - minute)}"
    if phase is MarketPhase.RESULT_DECLARED:
        return "Result declared"
    until_start = schedule.start - minute
    if until_start < 0:
        until_start += MINUTES_PER_DAY
    return f"Opens in {format_minutes(until_start)}"


def current_cycle_date(market: Market, now: datetime) -> date:
    """Local date on which the cycle containing `now` started."""
    local_now = _local(market, now)
    schedule = market_schedule(market)
    minute = _local_minute(local_now)
    if cycle_minute(schedule, minute) != minute:
        return local_now.date() - timedelta(days=1)
    return local_now.date()


@dataclass(frozen=True)
class CycleInstants:
    cycle_date: date
    start_at_utc: datetime
    end_at_utc: datetime
    result_at_utc: datetime


def resolve_utc_instants(market: Market, cycle_date: date) -> CycleInstants:
    """Absolute UTC instants for one cycle, honouring cross-midnight schedules."""
    schedule = market_schedule(market)
    zone = market_zone(market.timezone)
    midnight = datetime.combine(cycle_date, time(0, 0), tzinfo=zone)

    def _at(offset: int) -> datetime:
        return ensure_utc(midnight + timedelta(minutes=offset))

    return CycleInstants(
        cycle_date=cycle_date,
        start_at_utc=_at(schedule.start),
        end_at_utc=_at(schedule.end),
        result_at_utc=_at(schedule.result),
    )


def auto_declare_at(market: Market, delay: timedelta) -> datetime | None:
    if market.end_at_utc is None:
        return None
    return ensure_utc(market.end_at_utc) + delay


def should_auto_declare(market: Market, now: datetime, delay: timedelta) -> bool:
    if not market.is_active or market.has_declared_result:
        return False
    if market.current_status != MarketPhase.CLOSED:
        return False
    due = auto_declare_at(market, delay)
    return due is not None and ensure_utc(now) >= due
