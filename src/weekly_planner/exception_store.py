from __future__ import annotations

"""Access to cancelled occurrence dates, with a single-range lookup cache.

The cache holds exactly one ``(start_date, end_date)`` entry, filled for a
set of activity ids. Asking for a different range, or for ids outside that
set, is a miss. Nothing here invalidates on write: whoever mutates templates
or exceptions must call :meth:`ExceptionCache.invalidate` before resolving
again.
"""

import logging
import sqlite3
from typing import Iterable, Optional, Sequence

from .database_manager import DatabaseManager
from .models import ActivityException, ExceptionType
from .repositories import (
    create_exception,
    delete_exceptions_for_dates,
    find_exception,
    list_cancelled_dates,
)

logger = logging.getLogger(__name__)

RangeKey = tuple[str, str]
CancelledDates = dict[int, set[str]]


class ExceptionCache:
    def __init__(self) -> None:
        self._key: Optional[RangeKey] = None
        self._ids: frozenset[int] = frozenset()
        self._value: CancelledDates = {}

    @property
    def key(self) -> Optional[RangeKey]:
        return self._key

    def get(self, key: RangeKey, activity_ids: Iterable[int]) -> Optional[CancelledDates]:
        """Cached dates for ``activity_ids``, or ``None`` on a miss.

        The entry only answers for the activities it was filled for; asking
        about any other id (another owner's templates, a new template) misses.
        """
        # An empty map is never served from cache; it is cheap to re-query.
        if self._key != key or not self._value:
            return None
        wanted = frozenset(activity_ids)
        if not wanted <= self._ids:
            return None
        return {i: dates for i, dates in self._value.items() if i in wanted}

    def put(self, key: RangeKey, activity_ids: Iterable[int], value: CancelledDates) -> None:
        self._key = key
        self._ids = frozenset(activity_ids)
        self._value = value

    def invalidate(self, range_key: Optional[RangeKey] = None) -> None:
        """Drop the cached entry (only if it matches ``range_key`` when given)."""
        if range_key is None or range_key == self._key:
            self._key = None
            self._ids = frozenset()
            self._value = {}


class ExceptionStore:
    def __init__(self, db: DatabaseManager, cache: ExceptionCache | None = None):
        self._db = db
        self.cache = cache or ExceptionCache()

    def fetch_exceptions_for_date_range(
        self, activity_ids: Sequence[int], start_date: str, end_date: str
    ) -> CancelledDates:
        """Map activity id -> cancelled ISO dates within ``[start_date, end_date]``.

        A storage failure degrades to an empty (uncached) map so resolution
        can still produce a best-effort view.
        """
        if not activity_ids:
            return {}
        key = (start_date, end_date)
        cached = self.cache.get(key, activity_ids)
        if cached is not None:
            return cached
        try:
            cancelled = list_cancelled_dates(self._db, list(activity_ids), start_date, end_date)
        except sqlite3.Error as e:
            logger.warning(
                "exception lookup failed; resolving without exceptions: %s",
                e,
                extra={"_json_range": f"{start_date}..{end_date}"},
            )
            return {}
        self.cache.put(key, activity_ids, cancelled)
        return cancelled

    def clear_exceptions_cache(self) -> None:
        self.cache.invalidate()

    # --- Single exception access -------------------------------------------
    def find(self, activity_id: int, exception_date: str) -> ActivityException | None:
        return find_exception(self._db, activity_id, exception_date)

    def add(
        self,
        activity_id: int,
        exception_date: str,
        exception_type: ExceptionType = ExceptionType.CANCELLED,
    ) -> ActivityException:
        return create_exception(
            self._db,
            ActivityException(
                id=None,
                activity_id=activity_id,
                exception_date=exception_date,
                exception_type=exception_type,
            ),
        )

    def remove_dates(self, activity_id: int, dates: Sequence[str]) -> int:
        return delete_exceptions_for_dates(self._db, activity_id, list(dates))


__all__ = ["ExceptionCache", "ExceptionStore", "RangeKey", "CancelledDates"]
