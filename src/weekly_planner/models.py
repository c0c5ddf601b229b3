from __future__ import annotations

"""Dataclass models for activity templates, exceptions and resolved occurrences."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# Monday-first week model
DAY_ORDER: tuple[DayOfWeek, ...] = tuple(DayOfWeek)


class ExceptionType(str, Enum):
    CANCELLED = "cancelled"
    # Reserved: no modification payload is stored yet.
    MODIFIED = "modified"


@dataclass(frozen=True, slots=True)
class RecurringAnchor:
    day_of_week: DayOfWeek
    recurrence_end_date: Optional[str] = None  # YYYY-MM-DD, inclusive


@dataclass(frozen=True, slots=True)
class OneOffAnchor:
    activity_date: str  # YYYY-MM-DD
    day_of_week: Optional[DayOfWeek] = None  # legacy display only


Anchor = Union[RecurringAnchor, OneOffAnchor]


@dataclass(slots=True)
class ActivityTemplate:
    id: Optional[int]
    owner_id: str
    name: str
    color: str
    anchor: Anchor
    start_time: str  # HH:mm
    end_time: str  # HH:mm
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_recurring(self) -> bool:
        return isinstance(self.anchor, RecurringAnchor)

    @property
    def day_of_week(self) -> Optional[DayOfWeek]:
        return self.anchor.day_of_week


@dataclass(slots=True)
class ActivityException:
    id: Optional[int]
    activity_id: int
    exception_date: str  # YYYY-MM-DD
    exception_type: ExceptionType = ExceptionType.CANCELLED
    created_at: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Occurrence:
    template: ActivityTemplate
    instance_date: str  # YYYY-MM-DD
    start_time: str
    end_time: str

    @property
    def activity_id(self) -> Optional[int]:
        return self.template.id

    @property
    def name(self) -> str:
        return self.template.name


@dataclass(frozen=True, slots=True)
class ConflictReport:
    message: str
    conflicting: Occurrence


__all__ = [
    "DayOfWeek",
    "DAY_ORDER",
    "ExceptionType",
    "RecurringAnchor",
    "OneOffAnchor",
    "Anchor",
    "ActivityTemplate",
    "ActivityException",
    "Occurrence",
    "ConflictReport",
    "utc_now_iso",
]
