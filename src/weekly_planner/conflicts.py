from __future__ import annotations

"""Overlap detection between a candidate time slot and a day's occurrences.

Intervals are half-open: ``[09:00, 10:00)`` and ``[10:00, 11:00)`` touch but
do not conflict. Unparseable candidate times are not a conflict; format
validation happens before this point.
"""

from typing import Iterable, Iterator, Optional, Sequence

from .models import ActivityTemplate, ConflictReport, DayOfWeek, Occurrence
from .time_utils import date_to_day_of_week, parse_iso_date, parse_time


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


def _conflict_message(occ: Occurrence) -> str:
    return f'Time conflicts with "{occ.name}" ({occ.start_time} - {occ.end_time})'


def _iter_conflicts(
    existing: Iterable[Occurrence],
    candidate_start: str,
    candidate_end: str,
    exclude_id: Optional[int],
) -> Iterator[ConflictReport]:
    start, end = parse_time(candidate_start), parse_time(candidate_end)
    if start is None or end is None:
        return
    for occ in existing:
        if exclude_id is not None and occ.activity_id == exclude_id:
            continue
        occ_start, occ_end = parse_time(occ.start_time), parse_time(occ.end_time)
        if occ_start is None or occ_end is None:
            continue
        if intervals_overlap(start, end, occ_start, occ_end):
            yield ConflictReport(message=_conflict_message(occ), conflicting=occ)


def detect_conflict(
    existing: Iterable[Occurrence],
    candidate_start: str,
    candidate_end: str,
    exclude_id: Optional[int] = None,
) -> Optional[ConflictReport]:
    """First occurrence overlapping the candidate, or ``None``."""
    return next(_iter_conflicts(existing, candidate_start, candidate_end, exclude_id), None)


def find_conflicts(
    existing: Iterable[Occurrence],
    candidate_start: str,
    candidate_end: str,
    exclude_id: Optional[int] = None,
) -> list[ConflictReport]:
    return list(_iter_conflicts(existing, candidate_start, candidate_end, exclude_id))


# --- Batch validation (generated schedules) ---------------------------------

def _day_of(template: ActivityTemplate) -> Optional[DayOfWeek]:
    if template.day_of_week is not None:
        return template.day_of_week
    parsed = parse_iso_date(getattr(template.anchor, "activity_date", None))
    return date_to_day_of_week(parsed) if parsed else None


def _overlaps(a: ActivityTemplate, b: ActivityTemplate) -> bool:
    times = [parse_time(t) for t in (a.start_time, a.end_time, b.start_time, b.end_time)]
    if any(t is None for t in times):
        return False
    return intervals_overlap(*times)  # type: ignore[arg-type]


def validate_schedule(
    candidates: Sequence[ActivityTemplate],
    recurring: Sequence[ActivityTemplate],
) -> list[str]:
    """Conflict messages for generated candidates; empty means valid.

    Candidates are checked by weekday against existing recurring templates
    and against each other.
    """
    conflicts: list[str] = []
    for i, candidate in enumerate(candidates):
        day = _day_of(candidate)
        if day is None:
            continue
        for existing in recurring:
            if existing.day_of_week is day and _overlaps(candidate, existing):
                conflicts.append(
                    f'{candidate.name} on {day.label} conflicts with recurring "{existing.name}" '
                    f"({existing.start_time} - {existing.end_time})"
                )
        for j, other in enumerate(candidates):
            if i != j and _day_of(other) is day and _overlaps(candidate, other):
                conflicts.append(f"{candidate.name} conflicts with {other.name} on {day.label}")
    return conflicts


__all__ = [
    "intervals_overlap",
    "detect_conflict",
    "find_conflicts",
    "validate_schedule",
]
