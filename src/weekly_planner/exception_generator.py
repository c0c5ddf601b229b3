from __future__ import annotations

"""Cancel upcoming occurrences of a recurring activity ("skip next N weeks").

Each skip date is handled on its own: an existing exception is left alone,
and a storage error on one date is logged and that date skipped. The
result lists only the exceptions created by this call.
"""

from datetime import date, timedelta
import logging
import sqlite3

from .exception_store import ExceptionStore
from .models import ActivityException, DayOfWeek
from .time_utils import date_to_day_of_week, day_index, format_date_to_iso

logger = logging.getLogger(__name__)


def next_occurrence(day: DayOfWeek, from_date: date) -> date:
    """First ``day`` strictly after ``from_date``."""
    days_until = day_index(day) - day_index(date_to_day_of_week(from_date))
    if days_until <= 0:
        days_until += 7
    return from_date + timedelta(days=days_until)


def skip_dates(day: DayOfWeek, weeks: int, from_date: date) -> list[str]:
    first = next_occurrence(day, from_date)
    return [format_date_to_iso(first + timedelta(days=7 * i)) for i in range(max(weeks, 0))]


def generate_skip_exceptions(
    store: ExceptionStore,
    activity_id: int,
    day_of_week: DayOfWeek,
    weeks_to_skip: int,
    from_date: date | None = None,
) -> list[ActivityException]:
    created: list[ActivityException] = []
    for exception_date in skip_dates(day_of_week, weeks_to_skip, from_date or date.today()):
        try:
            existing = store.find(activity_id, exception_date)
        except sqlite3.Error as e:
            logger.warning(
                "exception lookup failed for %s, skipping date: %s",
                exception_date,
                e,
                extra={"_json_activity_id": activity_id},
            )
            continue
        if existing is not None:
            continue
        try:
            created.append(store.add(activity_id, exception_date))
        except sqlite3.Error as e:
            logger.warning(
                "failed to create exception for %s: %s",
                exception_date,
                e,
                extra={"_json_activity_id": activity_id},
            )
    if created:
        logger.info(
            "skipped %d occurrence(s)",
            len(created),
            extra={"_json_activity_id": activity_id},
        )
    return created


__all__ = ["next_occurrence", "skip_dates", "generate_skip_exceptions"]
