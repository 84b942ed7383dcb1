from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import ValidationError

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")

# Zone that "local" means; the host zone while unset.
_local_tz: Optional[ZoneInfo] = None


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def parse_iso_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat((value or "").strip())
    except ValueError:
        raise ValidationError(f"Invalid datetime {value!r}")


def parse_hhmm(value: str | None, default: time) -> time:
    """Parse a 24h "HH:MM" trigger time.

    Malformed input falls back to ``default``; out-of-range parts are clamped.
    """
    m = _HHMM.match((value or "").strip())
    if not m:
        return default
    hour = max(0, min(23, int(m.group(1))))
    minute = max(0, min(59, int(m.group(2))))
    return time(hour=hour, minute=minute)


def configure_timezone(name: str | None) -> None:
    """Make ``now_local`` read the wall clock of ``name`` (None: host zone)."""
    global _local_tz
    if not name:
        _local_tz = None
        return
    try:
        _local_tz = ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone {name!r}")


def now_local() -> datetime:
    """Current naive wall-clock time in the configured zone.

    Note: Wrapped so tests can patch/mocked easier.
    """
    if _local_tz is None:
        return datetime.now()
    return datetime.now(_local_tz).replace(tzinfo=None)


def start_of_day(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return datetime.combine(value.date(), time.min)
    return datetime.combine(value, time.min)


def iter_days(start: date, end_exclusive: date) -> Iterator[date]:
    current = start
    while current < end_exclusive:
        yield current
        current += timedelta(days=1)


def year_month(value: date | datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def months_between(start_ym: str, end_ym: str) -> int:
    sy, sm = (int(x) for x in start_ym.split("-"))
    ey, em = (int(x) for x in end_ym.split("-"))
    return (ey - sy) * 12 + (em - sm)


def to_ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)
