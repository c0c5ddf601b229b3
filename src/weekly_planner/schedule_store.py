from __future__ import annotations

"""ScheduleStore: validated mutations and resolved views with change signals.

Every mutation re-runs conflict detection (edits can introduce overlaps that
creation already prevented), invalidates the exception cache and emits
``changed``. User-facing validation problems are emitted on ``error``.
"""

from dataclasses import replace
from datetime import date, timedelta
import logging
import re
from typing import Iterable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from .conflicts import detect_conflict
from .database_manager import DatabaseManager
from .exception_generator import generate_skip_exceptions
from .exception_store import ExceptionStore
from .models import (
    DAY_ORDER,
    ActivityException,
    ActivityTemplate,
    Anchor,
    ConflictReport,
    DayOfWeek,
    Occurrence,
    OneOffAnchor,
    RecurringAnchor,
)
from .repositories import (
    create_activity,
    delete_activity,
    get_activity,
    get_setting,
    list_activities,
    list_activities_for_date_range,
    set_setting,
    update_activity,
)
from .resolver import group_by_date, resolve, sort_by_start
from .time_utils import (
    date_to_day_of_week,
    day_to_date,
    format_date_to_iso,
    parse_day,
    parse_iso_date,
    parse_time,
    week_bounds,
)

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#7f78d2"
SELECTED_DAY_KEY = "selected_day"
# Weeks ahead a recurring candidate is checked against
CONFLICT_HORIZON_WEEKS = 4

_HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")


class ScheduleStore(QObject):
    changed = pyqtSignal()
    error = pyqtSignal(str)

    def __init__(self, db: DatabaseManager, exception_store: ExceptionStore | None = None):
        super().__init__()
        self._db = db
        self._exceptions = exception_store or ExceptionStore(db)

    @property
    def exception_store(self) -> ExceptionStore:
        return self._exceptions

    # --- Resolved views -------------------------------------------------
    def occurrences_for_range(self, owner_id: str, start: date, end: date) -> list[Occurrence]:
        start_iso, end_iso = format_date_to_iso(start), format_date_to_iso(end)
        templates = list_activities_for_date_range(self._db, owner_id, start_iso, end_iso)
        ids = [t.id for t in templates if t.id is not None]
        cancelled = self._exceptions.fetch_exceptions_for_date_range(ids, start_iso, end_iso)
        return resolve(templates, cancelled, start, end)

    def occurrences_for_week(
        self, owner_id: str, week_offset: int = 0, today: date | None = None
    ) -> dict[DayOfWeek, list[Occurrence]]:
        monday, sunday = week_bounds(week_offset, today)
        by_date = group_by_date(self.occurrences_for_range(owner_id, monday, sunday))
        return {
            day: by_date.get(format_date_to_iso(monday + timedelta(days=i)), [])
            for i, day in enumerate(DAY_ORDER)
        }

    def occurrences_for_day(
        self, owner_id: str, day: DayOfWeek, week_offset: int = 0, today: date | None = None
    ) -> list[Occurrence]:
        return self.occurrences_on(owner_id, day_to_date(day, week_offset, today))

    def occurrences_on(self, owner_id: str, on: date) -> list[Occurrence]:
        return sort_by_start(self.occurrences_for_range(owner_id, on, on))

    # --- CRUD -----------------------------------------------------------
    def create(
        self,
        owner_id: str,
        name: str,
        anchor: Anchor,
        start_time: str,
        end_time: str,
        color: str | None = None,
        today: date | None = None,
    ) -> Optional[ActivityTemplate]:
        candidate = ActivityTemplate(
            id=None,
            owner_id=owner_id,
            name=name.strip(),
            color=color or DEFAULT_COLOR,
            anchor=anchor,
            start_time=start_time,
            end_time=end_time,
        )
        if not self._accept(candidate, today):
            return None
        created = create_activity(self._db, candidate)
        self._after_mutation()
        logger.info("activity created", extra={"_json_activity_id": created.id})
        return created

    def create_for_date(
        self,
        owner_id: str,
        name: str,
        on: date,
        start_time: str,
        end_time: str,
        color: str | None = None,
    ) -> Optional[ActivityTemplate]:
        anchor = OneOffAnchor(activity_date=format_date_to_iso(on), day_of_week=date_to_day_of_week(on))
        return self.create(owner_id, name, anchor, start_time, end_time, color)

    def update(
        self,
        activity: ActivityTemplate,
        *,
        name: str | None = None,
        color: str | None = None,
        anchor: Anchor | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        today: date | None = None,
    ) -> bool:
        if activity.id is None:
            self.error.emit("Activity has no id")
            return False
        edited = replace(
            activity,
            name=activity.name if name is None else name.strip(),
            color=color or activity.color,
            anchor=anchor or activity.anchor,
            start_time=start_time or activity.start_time,
            end_time=end_time or activity.end_time,
        )
        if not self._accept(edited, today):
            return False
        update_activity(self._db, edited)
        activity.name = edited.name
        activity.color = edited.color
        activity.anchor = edited.anchor
        activity.start_time = edited.start_time
        activity.end_time = edited.end_time
        activity.updated_at = edited.updated_at
        self._after_mutation()
        return True

    def delete(self, activity_id: int) -> bool:
        if get_activity(self._db, activity_id) is None:
            return False
        delete_activity(self._db, activity_id)
        self._after_mutation()
        return True

    # --- Exceptions -----------------------------------------------------
    def skip_occurrence(self, activity_id: int, on: date) -> Optional[ActivityException]:
        if get_activity(self._db, activity_id) is None:
            self.error.emit(f"No activity #{activity_id}")
            return None
        iso = format_date_to_iso(on)
        existing = self._exceptions.find(activity_id, iso)
        if existing is not None:
            return existing
        exception = self._exceptions.add(activity_id, iso)
        self._after_mutation()
        return exception

    def skip_next_weeks(
        self, activity_id: int, weeks: int, from_date: date | None = None
    ) -> list[ActivityException]:
        activity = get_activity(self._db, activity_id)
        if activity is None or not isinstance(activity.anchor, RecurringAnchor):
            self.error.emit("Only recurring activities can skip weeks")
            return []
        if weeks < 1:
            self.error.emit("Weeks to skip must be at least 1")
            return []
        created = generate_skip_exceptions(
            self._exceptions, activity_id, activity.anchor.day_of_week, weeks, from_date
        )
        if created:
            self._after_mutation()
        return created

    def unskip(self, activity_id: int, dates: Iterable[date | str]) -> int:
        iso_dates = [d if isinstance(d, str) else format_date_to_iso(d) for d in dates]
        removed = self._exceptions.remove_dates(activity_id, iso_dates)
        if removed:
            self._after_mutation()
        return removed

    # --- Stats / selection ----------------------------------------------
    def stats(self, owner_id: str, today: date | None = None) -> dict[str, int]:
        today = today or date.today()
        activities = list_activities(self._db, owner_id)
        return {
            "total": len(activities),
            "recurring": sum(1 for a in activities if a.is_recurring),
            "today": len(self.occurrences_on(owner_id, today)),
        }

    def get_selected_day(self) -> DayOfWeek | None:
        return parse_day(get_setting(self._db, SELECTED_DAY_KEY))

    def set_selected_day(self, day: DayOfWeek | None) -> None:
        set_setting(self._db, SELECTED_DAY_KEY, day.value if day else "")

    # --- Internal -------------------------------------------------------
    def _after_mutation(self) -> None:
        self._exceptions.clear_exceptions_cache()
        self.changed.emit()

    def _accept(self, candidate: ActivityTemplate, today: date | None) -> bool:
        message = self._validate(candidate)
        if message is None:
            report = self._find_conflict(candidate, today)
            message = report.message if report else None
        if message is not None:
            self.error.emit(message)
            return False
        return True

    def _validate(self, candidate: ActivityTemplate) -> str | None:
        if not candidate.name:
            return "Name required"
        if not _HEX_COLOR.fullmatch(candidate.color):
            return "Color must be a hex value like #7f78d2"
        start, end = parse_time(candidate.start_time), parse_time(candidate.end_time)
        if start is None:
            return "Start time must be HH:mm"
        if end is None:
            return "End time must be HH:mm"
        if start >= end:
            return "End time must be after start time"
        anchor = candidate.anchor
        if isinstance(anchor, OneOffAnchor) and parse_iso_date(anchor.activity_date) is None:
            return "Date must be YYYY-MM-DD"
        if (
            isinstance(anchor, RecurringAnchor)
            and anchor.recurrence_end_date
            and parse_iso_date(anchor.recurrence_end_date) is None
        ):
            return "Recurrence end date must be YYYY-MM-DD"
        return None

    def _candidate_dates(self, anchor: Anchor, today: date | None) -> list[date]:
        if isinstance(anchor, OneOffAnchor):
            on = parse_iso_date(anchor.activity_date)
            return [on] if on else []
        first = day_to_date(anchor.day_of_week, 0, today)
        until = parse_iso_date(anchor.recurrence_end_date) if anchor.recurrence_end_date else None
        dates = [first + timedelta(days=7 * i) for i in range(CONFLICT_HORIZON_WEEKS)]
        return [d for d in dates if until is None or d <= until]

    def _find_conflict(self, candidate: ActivityTemplate, today: date | None) -> ConflictReport | None:
        dates = self._candidate_dates(candidate.anchor, today)
        if not dates:
            return None
        by_date = group_by_date(self.occurrences_for_range(candidate.owner_id, min(dates), max(dates)))
        for on in dates:
            report = detect_conflict(
                by_date.get(format_date_to_iso(on), []),
                candidate.start_time,
                candidate.end_time,
                exclude_id=candidate.id,
            )
            if report is not None:
                return report
        return None


__all__ = ["ScheduleStore", "DEFAULT_COLOR", "SELECTED_DAY_KEY", "CONFLICT_HORIZON_WEEKS"]
