"""Datetime helpers. Everything stored is UTC; market schedules are local wall-clock."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from config.settings import settings


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def market_zone(name: str | None = None) -> ZoneInfo:
    return ZoneInfo(name or settings.MARKET_TIMEZONE)


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are treated as UTC (asyncpg returns aware ones anyway)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz_name: str | None = None) -> datetime:
    return ensure_utc(dt).astimezone(market_zone(tz_name))
