from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def _text(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"Expected a string, got {value!r}")
    return value.strip()


def parse_optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    v = _text(value)
    if not v:
        return None
    try:
        return parse_iso_date(v)
    except ValueError:
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD date")


def parse_clock_time(value: Optional[str]) -> Optional[time]:
    """Parse device clock strings: ``09:00``, ``09:00:15``, ``9:00 AM``."""

    v = _text(value)
    if not v:
        return None
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M:%S %p", "%I:%M%p"):
        try:
            return datetime.strptime(v.upper(), fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time value: {value!r}")


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    v = _text(value)
    if not v:
        return None
    try:
        return datetime.fromisoformat(v)
    except ValueError:
        raise ValidationError(f"Invalid datetime value: {value!r}")


def hours_between(start: datetime, end: datetime) -> float:
    """Hours from start to end, rounded to 2 decimals and never negative."""
    return round(max((end - start).total_seconds(), 0) / 3600, 2)


def minutes_between(a: datetime, b: datetime) -> float:
    return abs((b - a).total_seconds()) / 60


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)

