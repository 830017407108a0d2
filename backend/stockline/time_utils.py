from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

# All stored datetimes are UTC without tzinfo; the API speaks ISO-8601 with a trailing Z.


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def days_ago(days: int | float, moment: Optional[datetime] = None) -> datetime:
    return (moment or utcnow()) - timedelta(days=days)


def days_from_now(days: int | float, moment: Optional[datetime] = None) -> datetime:
    return (moment or utcnow()) + timedelta(days=days)


def date_key(moment: Optional[datetime] = None) -> str:
    """Calendar-day key (YYMMDD) used to reset document counters daily."""
    return (moment or utcnow()).strftime("%y%m%d")


def parse_iso_datetime(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime into a UTC-naive datetime.

    Blank values give None. Naive values are taken as UTC; "Z" and offsets
    are converted. A bare date ("2026-10-19") means the start of that day,
    or its last microsecond when end_of_day is set, so a date_to filter
    includes the whole day.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    if len(text) == 10:
        day = date.fromisoformat(text)
        return datetime.combine(day, time.max if end_of_day else time.min)

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Serialize to second precision with a trailing 'Z'; naive values are UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
