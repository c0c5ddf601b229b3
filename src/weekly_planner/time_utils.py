from __future__ import annotations

"""Pure helpers for ``HH:mm`` times, ISO dates and the Monday-first week.

Invalid input is an expected outcome: parsers return ``None`` instead of
raising. Raw weekday indices never leave this module; everything else works
with :class:`~weekly_planner.models.DayOfWeek`.
"""

from datetime import date, timedelta
import re
from typing import Iterator, Optional

from .models import DAY_ORDER, DayOfWeek

_TIME_RE = re.compile(r"([0-9]{1,2}):([0-9]{2})")
_ISO_DATE_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")

MINUTES_PER_DAY = 24 * 60


# --- Times ------------------------------------------------------------------

def parse_time(value: object) -> Optional[int]:
    """Return minutes since midnight for ``H:MM``/``HH:MM``, else ``None``."""
    if not isinstance(value, str):
        return None
    match = _TIME_RE.fullmatch(value)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def is_valid_time(value: object) -> bool:
    return parse_time(value) is not None


# --- Dates ------------------------------------------------------------------

def format_date_to_iso(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_iso_date(value: object) -> Optional[date]:
    if not isinstance(value, str):
        return None
    match = _ISO_DATE_RE.fullmatch(value)
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date in ``[start, end]``; nothing when ``start > end``."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


# --- Day of week ------------------------------------------------------------

def parse_day(value: object) -> Optional[DayOfWeek]:
    if isinstance(value, DayOfWeek):
        return value
    if not isinstance(value, str):
        return None
    try:
        return DayOfWeek(value.strip().lower())
    except ValueError:
        return None


def day_index(day: DayOfWeek) -> int:
    """Position in the Monday-first week (Monday=0 ... Sunday=6)."""
    return DAY_ORDER.index(day)


def date_to_day_of_week(value: date) -> DayOfWeek:
    # date.weekday() is already Monday=0, Sunday=6
    return DAY_ORDER[value.weekday()]


def week_bounds(week_offset: int = 0, today: date | None = None) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``today + 7*week_offset``."""
    reference = (today or date.today()) + timedelta(days=7 * week_offset)
    monday = reference - timedelta(days=day_index(date_to_day_of_week(reference)))
    return monday, monday + timedelta(days=6)


def day_to_date(day: DayOfWeek, week_offset: int = 0, today: date | None = None) -> date:
    monday, _ = week_bounds(week_offset, today)
    return monday + timedelta(days=day_index(day))


__all__ = [
    "parse_time",
    "format_minutes",
    "is_valid_time",
    "format_date_to_iso",
    "parse_iso_date",
    "iter_dates",
    "parse_day",
    "day_index",
    "date_to_day_of_week",
    "week_bounds",
    "day_to_date",
    "MINUTES_PER_DAY",
]
