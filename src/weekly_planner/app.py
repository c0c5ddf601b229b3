from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QCoreApplication

from .database_manager import DBConfig, DatabaseManager
from .gemini_planner import GeminiClient, GeminiClientConfig, GeminiError, SchedulePlanner
from .keys import load_api_key, redact, save_api_key
from .logging_setup import configure_logging
from .models import DAY_ORDER, OneOffAnchor, RecurringAnchor
from .repositories import list_activities
from .schedule_store import ScheduleStore
from .seed import seed_basic_data
from .time_utils import format_date_to_iso, parse_day, parse_iso_date, week_bounds

APP_NAME = "Weekly Planner"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppConfig:
    data_dir: Path = field(default_factory=lambda: Path("data"))
    db_filename: str = "weekly_planner.sqlite"
    log_level: str = "INFO"
    owner_id: str = "local"

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            data_dir=Path(os.environ.get("WEEKLY_PLANNER_DATA_DIR", "data")),
            log_level=os.environ.get("WEEKLY_PLANNER_LOG_LEVEL", "INFO"),
            owner_id=os.environ.get("WEEKLY_PLANNER_OWNER", "local"),
        )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename


@dataclass(slots=True)
class AppState:
    config: AppConfig
    db: DatabaseManager
    schedule_store: ScheduleStore
    planner: SchedulePlanner | None


def get_app_state(config: AppConfig | None = None) -> AppState:
    config = config or AppConfig.from_env()
    config.data_dir.mkdir(parents=True, exist_ok=True)
    # Logging first
    configure_logging(config.data_dir, config.log_level)
    db = DatabaseManager(DBConfig(path=config.db_path))
    db.init_db()
    store = ScheduleStore(db)
    # Gemini key: prefer secure storage, fall back to env
    gemini_key = load_api_key(config.data_dir) or os.environ.get("GEMINI_API_KEY", "")
    planner = SchedulePlanner(GeminiClient(GeminiClientConfig(api_key=gemini_key))) if gemini_key else None
    logger.info("app_state_created", extra={"_json_gemini_key": redact(gemini_key)})
    return AppState(config=config, db=db, schedule_store=store, planner=planner)


# --- Command line -------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="weekly-planner", description=APP_NAME)
    sub = parser.add_subparsers(dest="command", required=True)

    week = sub.add_parser("week", help="show the resolved week")
    week.add_argument("--offset", type=int, default=0, help="weeks from the current one")

    add = sub.add_parser("add", help="create an activity")
    add.add_argument("name")
    add.add_argument("start", help="HH:mm")
    add.add_argument("end", help="HH:mm")
    where = add.add_mutually_exclusive_group(required=True)
    where.add_argument("--day", help="weekly on this day (recurring)")
    where.add_argument("--date", help="once on this YYYY-MM-DD date")
    add.add_argument("--until", help="last date of a recurring activity")
    add.add_argument("--color")

    skip = sub.add_parser("skip", help="skip occurrences of an activity")
    skip.add_argument("activity_id", type=int)
    skip.add_argument("--weeks", type=int, default=1)
    skip.add_argument("--date", help="skip only this YYYY-MM-DD date")

    unskip = sub.add_parser("unskip", help="restore skipped dates")
    unskip.add_argument("activity_id", type=int)
    unskip.add_argument("dates", nargs="+")

    delete = sub.add_parser("delete", help="delete an activity and its exceptions")
    delete.add_argument("activity_id", type=int)

    sub.add_parser("list", help="list stored activities")
    sub.add_parser("seed", help="add sample activities")

    plan = sub.add_parser("plan", help="draft activities from a request with Gemini")
    plan.add_argument("request")
    plan.add_argument("--offset", type=int, default=0)

    key = sub.add_parser("set-key", help="store the Gemini API key")
    key.add_argument("api_key")
    return parser


def _print_week(state: AppState, offset: int) -> None:
    monday, sunday = week_bounds(offset)
    print(f"Week {format_date_to_iso(monday)} - {format_date_to_iso(sunday)}")
    week = state.schedule_store.occurrences_for_week(state.config.owner_id, offset)
    for day in DAY_ORDER:
        print(f"{day.label}:")
        for occ in week[day]:
            marker = "*" if occ.template.is_recurring else " "
            print(f"  {occ.start_time}-{occ.end_time} {marker} {occ.name} [#{occ.activity_id}]")


def _add(state: AppState, args: argparse.Namespace) -> int:
    if args.day:
        day = parse_day(args.day)
        if day is None:
            print(f"Unknown day: {args.day}", file=sys.stderr)
            return 2
        anchor: RecurringAnchor | OneOffAnchor = RecurringAnchor(day_of_week=day, recurrence_end_date=args.until)
    else:
        anchor = OneOffAnchor(activity_date=args.date)
    created = state.schedule_store.create(
        state.config.owner_id, args.name, anchor, args.start, args.end, color=args.color
    )
    if created is None:
        return 1
    print(f"Created #{created.id}")
    return 0


def _skip(state: AppState, args: argparse.Namespace) -> int:
    store = state.schedule_store
    if args.date:
        on = parse_iso_date(args.date)
        if on is None:
            print(f"Invalid date: {args.date}", file=sys.stderr)
            return 2
        if store.skip_occurrence(args.activity_id, on) is None:
            return 1
        print(f"Skipped {args.date}")
        return 0
    created = store.skip_next_weeks(args.activity_id, args.weeks)
    for e in created:
        print(f"Skipped {e.exception_date}")
    return 0


def _plan(state: AppState, args: argparse.Namespace) -> int:
    if state.planner is None:
        print("Gemini API key is not configured (set-key or GEMINI_API_KEY)", file=sys.stderr)
        return 2
    owner = state.config.owner_id
    recurring = [a for a in list_activities(state.db, owner) if a.is_recurring]
    week_start, _ = week_bounds(args.offset)
    try:
        candidates, conflicts = state.planner.generate(args.request, recurring, week_start, owner)
    except GeminiError as e:
        print(f"AI error: {e}", file=sys.stderr)
        return 1
    for c in candidates:
        where = c.day_of_week.label if c.day_of_week else "?"
        kind = "weekly" if c.is_recurring else getattr(c.anchor, "activity_date", "")
        print(f"{c.name}: {where} {c.start_time}-{c.end_time} ({kind})")
    for message in conflicts:
        print(f"conflict: {message}")
    return 1 if conflicts else 0


def run(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        argv = sys.argv
    args = _build_parser().parse_args(argv[1:])
    app = QCoreApplication.instance() or QCoreApplication(argv)  # noqa: F841
    state = get_app_state()
    state.schedule_store.error.connect(lambda message: print(message, file=sys.stderr))
    try:
        if args.command == "week":
            _print_week(state, args.offset)
        elif args.command == "add":
            return _add(state, args)
        elif args.command == "skip":
            return _skip(state, args)
        elif args.command == "unskip":
            removed = state.schedule_store.unskip(args.activity_id, args.dates)
            print(f"Restored {removed} date(s)")
        elif args.command == "delete":
            if not state.schedule_store.delete(args.activity_id):
                print(f"No activity #{args.activity_id}", file=sys.stderr)
                return 1
        elif args.command == "list":
            for a in list_activities(state.db, state.config.owner_id):
                where = a.day_of_week.label if a.is_recurring and a.day_of_week else getattr(a.anchor, "activity_date", "")
                print(f"#{a.id} {a.name} {where} {a.start_time}-{a.end_time}")
        elif args.command == "seed":
            print(f"Added {seed_basic_data(state.db, state.config.owner_id)} activities")
        elif args.command == "plan":
            return _plan(state, args)
        elif args.command == "set-key":
            save_api_key(state.config.data_dir, args.api_key)
            print(f"Stored key {redact(args.api_key)}")
        return 0
    finally:
        state.db.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(run())
