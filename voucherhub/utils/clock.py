"""
Calendar-day policy.

Timestamps are stored in UTC. Quota windows and report buckets use the
calendar day in BUSINESS_TIMEZONE.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from voucherhub.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_business_tz(name: Optional[str] = None) -> tzinfo:
    name = name or settings.BUSINESS_TIMEZONE
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def business_day(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar day of `moment` in the business time zone"""
    return ensure_utc(moment).astimezone(tz or get_business_tz()).date()


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """[start, end) of a business day, expressed in UTC"""
    tz = tz or get_business_tz()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def get_clock():
    """FastAPI dependency; overridden in tests"""
    return utc_now
