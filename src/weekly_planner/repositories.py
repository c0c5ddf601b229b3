from __future__ import annotations

"""Repository helper functions for activity templates, exceptions and settings."""

import logging
from typing import Iterable, Sequence
import sqlite3

from .database_manager import DatabaseManager
from .models import (
    ActivityException,
    ActivityTemplate,
    Anchor,
    ExceptionType,
    OneOffAnchor,
    RecurringAnchor,
)
from .time_utils import date_to_day_of_week, parse_day, parse_iso_date

logger = logging.getLogger(__name__)


# --- Row mapping ------------------------------------------------------------

def _row_to_anchor(row: sqlite3.Row) -> Anchor | None:
    day = parse_day(row["day"])
    if row["is_recurring"]:
        if day is None or row["activity_date"] is not None:
            return None
        return RecurringAnchor(day_of_week=day, recurrence_end_date=row["recurrence_end_date"])
    if not row["activity_date"]:
        return None
    return OneOffAnchor(activity_date=row["activity_date"], day_of_week=day)


def _row_to_activity(row: sqlite3.Row) -> ActivityTemplate | None:
    anchor = _row_to_anchor(row)
    if anchor is None:
        logger.warning(
            "skipping activity with inconsistent anchor",
            extra={"_json_activity_id": row["id"]},
        )
        return None
    return ActivityTemplate(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        color=row["color"],
        anchor=anchor,
        start_time=row["start_time"],
        end_time=row["end_time"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _rows_to_activities(rows: Iterable[sqlite3.Row]) -> list[ActivityTemplate]:
    activities = []
    for row in rows:
        activity = _row_to_activity(row)
        if activity is not None:
            activities.append(activity)
    return activities


def _anchor_columns(anchor: Anchor) -> tuple[str | None, str | None, int, str | None]:
    """(day, activity_date, is_recurring, recurrence_end_date) for an anchor."""
    if isinstance(anchor, RecurringAnchor):
        return anchor.day_of_week.value, None, 1, anchor.recurrence_end_date
    day = anchor.day_of_week
    if day is None:
        parsed = parse_iso_date(anchor.activity_date)
        day = date_to_day_of_week(parsed) if parsed else None
    return (day.value if day else None), anchor.activity_date, 0, None


def _row_to_exception(row: sqlite3.Row) -> ActivityException:
    return ActivityException(
        id=row["id"],
        activity_id=row["activity_id"],
        exception_date=row["exception_date"],
        exception_type=ExceptionType(row["exception_type"]),
        created_at=row["created_at"],
    )


def _placeholders(values: Sequence) -> str:
    return ",".join("?" for _ in values)


# --- Activities -------------------------------------------------------------

def create_activity(db: DatabaseManager, activity: ActivityTemplate) -> ActivityTemplate:
    day, activity_date, is_recurring, end_date = _anchor_columns(activity.anchor)
    cur = db.write(
        """
        INSERT INTO activities
            (owner_id, name, color, day, activity_date, start_time, end_time,
             is_recurring, recurrence_end_date)
        VALUES (?,?,?,?,?,?,?,?,?)
        """,
        (
            activity.owner_id,
            activity.name,
            activity.color,
            day,
            activity_date,
            activity.start_time,
            activity.end_time,
            is_recurring,
            end_date,
        ),
    )
    activity.id = int(cur.lastrowid)  # type: ignore[arg-type]
    row = db.query_one("SELECT created_at, updated_at FROM activities WHERE id=?", (activity.id,))
    if row:
        activity.created_at = row["created_at"]
        activity.updated_at = row["updated_at"]
    return activity


def get_activity(db: DatabaseManager, activity_id: int) -> ActivityTemplate | None:
    row = db.query_one("SELECT * FROM activities WHERE id=?", (activity_id,))
    if not row:
        return None
    return _row_to_activity(row)


def list_activities(db: DatabaseManager, owner_id: str) -> list[ActivityTemplate]:
    rows = db.query_all(
        "SELECT * FROM activities WHERE owner_id=? ORDER BY start_time, id", (owner_id,)
    )
    return _rows_to_activities(rows)


def list_activities_for_date_range(
    db: DatabaseManager, owner_id: str, start_date: str, end_date: str
) -> list[ActivityTemplate]:
    """One-off templates dated inside the range plus every recurring template."""
    rows = db.query_all(
        """
        SELECT * FROM activities
        WHERE owner_id=?
          AND (is_recurring=1 OR activity_date BETWEEN ? AND ?)
        ORDER BY start_time, id
        """,
        (owner_id, start_date, end_date),
    )
    return _rows_to_activities(rows)


def update_activity(db: DatabaseManager, activity: ActivityTemplate) -> None:
    assert activity.id is not None, "Activity must have id to update"
    day, activity_date, is_recurring, end_date = _anchor_columns(activity.anchor)
    db.write(
        """
        UPDATE activities
        SET name=?, color=?, day=?, activity_date=?, start_time=?, end_time=?,
            is_recurring=?, recurrence_end_date=?,
            updated_at=strftime('%Y-%m-%dT%H:%M:%SZ','now')
        WHERE id=?
        """,
        (
            activity.name,
            activity.color,
            day,
            activity_date,
            activity.start_time,
            activity.end_time,
            is_recurring,
            end_date,
            activity.id,
        ),
    )
    row = db.query_one("SELECT updated_at FROM activities WHERE id=?", (activity.id,))
    if row:
        activity.updated_at = row["updated_at"]


def delete_activity(db: DatabaseManager, activity_id: int) -> None:
    # activity_exceptions rows go with it (ON DELETE CASCADE)
    db.write("DELETE FROM activities WHERE id=?", (activity_id,))


# --- Exceptions -------------------------------------------------------------

def create_exception(db: DatabaseManager, exception: ActivityException) -> ActivityException:
    cur = db.write(
        "INSERT INTO activity_exceptions (activity_id, exception_date, exception_type) VALUES (?,?,?)",
        (exception.activity_id, exception.exception_date, exception.exception_type.value),
    )
    exception.id = int(cur.lastrowid)  # type: ignore[arg-type]
    row = db.query_one("SELECT created_at FROM activity_exceptions WHERE id=?", (exception.id,))
    if row:
        exception.created_at = row["created_at"]
    return exception


def find_exception(db: DatabaseManager, activity_id: int, exception_date: str) -> ActivityException | None:
    row = db.query_one(
        "SELECT * FROM activity_exceptions WHERE activity_id=? AND exception_date=?",
        (activity_id, exception_date),
    )
    return _row_to_exception(row) if row else None


def list_exceptions_for_activity(db: DatabaseManager, activity_id: int) -> list[ActivityException]:
    rows = db.query_all(
        "SELECT * FROM activity_exceptions WHERE activity_id=? ORDER BY exception_date",
        (activity_id,),
    )
    return [_row_to_exception(r) for r in rows]


def list_cancelled_dates(
    db: DatabaseManager, activity_ids: Sequence[int], start_date: str, end_date: str
) -> dict[int, set[str]]:
    if not activity_ids:
        return {}
    rows = db.query_all(
        f"""
        SELECT activity_id, exception_date FROM activity_exceptions
        WHERE activity_id IN ({_placeholders(activity_ids)})
          AND exception_type=?
          AND exception_date BETWEEN ? AND ?
        """,
        (*activity_ids, ExceptionType.CANCELLED.value, start_date, end_date),
    )
    cancelled: dict[int, set[str]] = {}
    for r in rows:
        cancelled.setdefault(r["activity_id"], set()).add(r["exception_date"])
    return cancelled


def delete_exceptions_for_dates(db: DatabaseManager, activity_id: int, dates: Sequence[str]) -> int:
    if not dates:
        return 0
    cur = db.write(
        f"DELETE FROM activity_exceptions WHERE activity_id=? AND exception_date IN ({_placeholders(dates)})",
        (activity_id, *dates),
    )
    return cur.rowcount


# --- Settings ---------------------------------------------------------------

def get_setting(db: DatabaseManager, key: str) -> str | None:
    row = db.query_one("SELECT value FROM settings WHERE key=?", (key,))
    return row["value"] if row else None


def set_setting(db: DatabaseManager, key: str, value: str) -> None:
    db.write(
        "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
        (key, value),
    )


__all__ = [
    # Activities
    "create_activity",
    "get_activity",
    "list_activities",
    "list_activities_for_date_range",
    "update_activity",
    "delete_activity",
    # Exceptions
    "create_exception",
    "find_exception",
    "list_exceptions_for_activity",
    "list_cancelled_dates",
    "delete_exceptions_for_dates",
    # Settings
    "get_setting",
    "set_setting",
]
