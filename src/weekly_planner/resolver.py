from __future__ import annotations

"""Turn activity templates into concrete occurrences for a date range.

Resolution is a pure function of (templates, cancelled dates, range). Each
template is expanded independently; a template that cannot be expanded
(malformed date, broken time range) yields a :class:`Skipped` record instead
of an exception, and :func:`resolve` logs and drops those so one bad record
never hides the rest of the week.
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import Iterable, Mapping, Sequence, Union

from .models import ActivityTemplate, DayOfWeek, Occurrence, OneOffAnchor, RecurringAnchor
from .time_utils import (
    date_to_day_of_week,
    format_date_to_iso,
    iter_dates,
    parse_iso_date,
    parse_time,
)

logger = logging.getLogger(__name__)

CancelledDates = Mapping[int, Iterable[str]]


@dataclass(frozen=True, slots=True)
class Skipped:
    template: ActivityTemplate
    reason: str


Expansion = Union[list[Occurrence], Skipped]


def _is_cancelled(template: ActivityTemplate, iso_date: str, exceptions: CancelledDates) -> bool:
    if template.id is None:
        return False
    return iso_date in exceptions.get(template.id, ())


def _occurrence(template: ActivityTemplate, iso_date: str) -> Occurrence:
    return Occurrence(
        template=template,
        instance_date=iso_date,
        start_time=template.start_time,
        end_time=template.end_time,
    )


def _expand(
    template: ActivityTemplate,
    days: Sequence[tuple[date, str, DayOfWeek]],
    range_start: date,
    range_end: date,
    exceptions: CancelledDates,
) -> Expansion:
    start, end = parse_time(template.start_time), parse_time(template.end_time)
    if start is None or end is None or start >= end:
        return Skipped(template, f"invalid time range {template.start_time!r}-{template.end_time!r}")

    anchor = template.anchor
    if isinstance(anchor, OneOffAnchor):
        on = parse_iso_date(anchor.activity_date)
        if on is None:
            return Skipped(template, f"malformed activity date {anchor.activity_date!r}")
        iso = format_date_to_iso(on)
        if not (range_start <= on <= range_end) or _is_cancelled(template, iso, exceptions):
            return []
        return [_occurrence(template, iso)]

    assert isinstance(anchor, RecurringAnchor)
    until = None
    if anchor.recurrence_end_date:
        until = parse_iso_date(anchor.recurrence_end_date)
        if until is None:
            return Skipped(template, f"malformed recurrence end date {anchor.recurrence_end_date!r}")
    return [
        _occurrence(template, iso)
        for on, iso, weekday in days
        if weekday is anchor.day_of_week
        and (until is None or on <= until)
        and not _is_cancelled(template, iso, exceptions)
    ]


def resolve_with_skips(
    templates: Iterable[ActivityTemplate],
    exceptions: CancelledDates,
    range_start: date,
    range_end: date,
) -> tuple[list[Occurrence], list[Skipped]]:
    days = [(d, format_date_to_iso(d), date_to_day_of_week(d)) for d in iter_dates(range_start, range_end)]
    occurrences: list[Occurrence] = []
    skipped: list[Skipped] = []
    for template in templates:
        result = _expand(template, days, range_start, range_end, exceptions)
        if isinstance(result, Skipped):
            skipped.append(result)
        else:
            occurrences.extend(result)
    return occurrences, skipped


def resolve(
    templates: Iterable[ActivityTemplate],
    exceptions: CancelledDates,
    range_start: date,
    range_end: date,
) -> list[Occurrence]:
    """Occurrences of ``templates`` in ``[range_start, range_end]``, unsorted."""
    occurrences, skipped = resolve_with_skips(templates, exceptions, range_start, range_end)
    for s in skipped:
        logger.warning(
            "skipping activity during resolution: %s",
            s.reason,
            extra={"_json_activity_id": s.template.id},
        )
    return occurrences


def sort_by_start(occurrences: Iterable[Occurrence]) -> list[Occurrence]:
    return sorted(
        occurrences,
        key=lambda o: (o.instance_date, parse_time(o.start_time) or 0, o.name),
    )


def group_by_date(occurrences: Iterable[Occurrence]) -> dict[str, list[Occurrence]]:
    grouped: dict[str, list[Occurrence]] = {}
    for occ in sort_by_start(occurrences):
        grouped.setdefault(occ.instance_date, []).append(occ)
    return grouped


__all__ = [
    "Skipped",
    "resolve",
    "resolve_with_skips",
    "sort_by_start",
    "group_by_date",
]
