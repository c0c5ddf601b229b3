from __future__ import annotations

"""SQLite storage for activity templates and their exceptions.

Schema changes are plain functions appended to ``MIGRATIONS``; applied
versions live in ``schema_migrations`` so ``init_db`` is safe to call on
every start-up.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
import sqlite3
from typing import Callable, Iterable, Iterator


@dataclass(slots=True)
class DBConfig:
    path: Path
    pragmas: tuple[tuple[str, str | int], ...] = (
        ("journal_mode", "WAL"),
        ("foreign_keys", 1),
        ("synchronous", "NORMAL"),
    )


class DatabaseManager:
    def __init__(self, config: DBConfig):
        self.config = config
        self._conn: sqlite3.Connection | None = None

    # --- Connection ---------------------------------------------------------
    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self.config.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.config.path)
            self._conn.row_factory = sqlite3.Row
            cur = self._conn.cursor()
            for key, value in self.config.pragmas:
                cur.execute(f"PRAGMA {key}={value}")
            cur.close()
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on error."""
        conn = self.connect()
        with conn:
            yield conn

    # --- Migrations ---------------------------------------------------------
    def init_db(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
                )
                """
            )
        applied = {row["version"] for row in self.query_all("SELECT version FROM schema_migrations")}
        for version, migration_fn in enumerate(MIGRATIONS, start=1):
            if version in applied:
                continue
            with self.transaction() as conn:
                migration_fn(conn)
                conn.execute("INSERT INTO schema_migrations (version) VALUES (?)", (version,))

    # --- Queries ------------------------------------------------------------
    def execute(self, sql: str, params: Iterable | None = None) -> sqlite3.Cursor:
        return self.connect().execute(sql, tuple(params or ()))

    def write(self, sql: str, params: Iterable | None = None) -> sqlite3.Cursor:
        with self.transaction() as conn:
            return conn.execute(sql, tuple(params or ()))

    def query_all(self, sql: str, params: Iterable | None = None) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def query_one(self, sql: str, params: Iterable | None = None) -> sqlite3.Row | None:
        return self.execute(sql, params).fetchone()


# --- Migration definitions --------------------------------------------------

def migration_001_create_schedule_tables(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE activities (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id TEXT NOT NULL,
            name TEXT NOT NULL,
            color TEXT NOT NULL DEFAULT '#7f78d2',
            day TEXT NOT NULL CHECK (
                day IN ('monday','tuesday','wednesday','thursday','friday','saturday','sunday')
            ),
            activity_date TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            is_recurring INTEGER NOT NULL DEFAULT 0,
            recurrence_end_date TEXT,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
            CHECK (
                (is_recurring = 1 AND activity_date IS NULL) OR
                (is_recurring = 0 AND activity_date IS NOT NULL)
            )
        );

        CREATE TABLE activity_exceptions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            activity_id INTEGER NOT NULL REFERENCES activities(id) ON DELETE CASCADE,
            exception_date TEXT NOT NULL,
            exception_type TEXT NOT NULL CHECK (exception_type IN ('cancelled','modified')),
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
            UNIQUE (activity_id, exception_date)
        );

        CREATE INDEX idx_activities_owner ON activities(owner_id);
        CREATE INDEX idx_activities_owner_date ON activities(owner_id, activity_date)
            WHERE activity_date IS NOT NULL;
        CREATE INDEX idx_activities_owner_day ON activities(owner_id, day)
            WHERE is_recurring = 1;
        CREATE INDEX idx_activity_exceptions_date ON activity_exceptions(exception_date);
        """
    )


def migration_002_add_settings_table(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )


MIGRATIONS: list[Callable[[sqlite3.Connection], None]] = [
    migration_001_create_schedule_tables,
    migration_002_add_settings_table,
]

__all__ = [
    "DBConfig",
    "DatabaseManager",
    "MIGRATIONS",
]
