"""Seed data helper for development convenience."""

from datetime import date

from .database_manager import DatabaseManager
from .models import ActivityTemplate, DayOfWeek, OneOffAnchor, RecurringAnchor
from .repositories import create_activity, list_activities
from .time_utils import day_to_date, format_date_to_iso

PALETTE = ("#f76e6e", "#fdbf4e", "#58c9b9", "#7f78d2", "#ffa5ab")

# (name, day, start, end, recurring)
SAMPLE_ACTIVITIES = (
    ("Deep Work", DayOfWeek.MONDAY, "08:00", "10:00", True),
    ("Workout", DayOfWeek.TUESDAY, "07:00", "08:00", True),
    ("Reading", DayOfWeek.WEDNESDAY, "20:00", "21:00", True),
    ("Focus Block", DayOfWeek.THURSDAY, "09:00", "11:00", True),
    ("Meetup", DayOfWeek.FRIDAY, "18:00", "20:00", False),
    ("Planning", DayOfWeek.SUNDAY, "17:00", "17:30", True),
)


def seed_basic_data(db: DatabaseManager, owner_id: str, today: date | None = None) -> int:
    """Create sample activities for an owner with none; returns how many were added."""
    if list_activities(db, owner_id):
        return 0  # Already seeded
    for index, (name, day, start, end, recurring) in enumerate(SAMPLE_ACTIVITIES):
        if recurring:
            anchor = RecurringAnchor(day_of_week=day)
        else:
            anchor = OneOffAnchor(activity_date=format_date_to_iso(day_to_date(day, 0, today)), day_of_week=day)
        create_activity(
            db,
            ActivityTemplate(
                id=None,
                owner_id=owner_id,
                name=name,
                color=PALETTE[index % len(PALETTE)],
                anchor=anchor,
                start_time=start,
                end_time=end,
            ),
        )
    return len(SAMPLE_ACTIVITIES)


__all__ = ["seed_basic_data", "SAMPLE_ACTIVITIES"]
