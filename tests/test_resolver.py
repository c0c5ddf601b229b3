from datetime import date

from weekly_planner.models import DayOfWeek
from weekly_planner.resolver import group_by_date, resolve, resolve_with_skips, sort_by_start

from factories import WEEK_END, WEEK_START, make_one_off, make_recurring


def test_one_off_inside_range_inclusive():
    first = make_one_off("2024-01-01", id=1)
    last = make_one_off("2024-01-07", id=2)
    occurrences = resolve([first, last], {}, WEEK_START, WEEK_END)
    assert sorted(o.instance_date for o in occurrences) == ["2024-01-01", "2024-01-07"]


def test_one_off_outside_range_yields_nothing():
    before = make_one_off("2023-12-31", id=1)
    after = make_one_off("2024-01-08", id=2)
    assert resolve([before, after], {}, WEEK_START, WEEK_END) == []


def test_recurring_wednesday_yields_one_occurrence():
    gym = make_recurring(DayOfWeek.WEDNESDAY, id=7)
    occurrences = resolve([gym], {}, WEEK_START, WEEK_END)
    assert len(occurrences) == 1
    occ = occurrences[0]
    assert occ.instance_date == "2024-01-03"
    assert (occ.start_time, occ.end_time) == ("09:00", "10:00")
    assert occ.activity_id == 7


def test_exception_cancels_exact_date_only():
    tuesday = make_recurring(DayOfWeek.TUESDAY, "14:00", "15:00", id=3)
    cancelled = {3: {"2024-01-02"}}
    assert resolve([tuesday], cancelled, WEEK_START, WEEK_END) == []
    next_week = resolve([tuesday], cancelled, date(2024, 1, 8), date(2024, 1, 14))
    assert [o.instance_date for o in next_week] == ["2024-01-09"]


def test_exception_cancels_one_off():
    dentist = make_one_off("2024-01-04", id=4)
    assert resolve([dentist], {4: {"2024-01-04"}}, WEEK_START, WEEK_END) == []


def test_recurrence_end_date_is_inclusive():
    weekly = make_recurring(DayOfWeek.MONDAY, id=5, until="2024-01-08")
    occurrences = resolve([weekly], {}, WEEK_START, date(2024, 1, 21))
    assert [o.instance_date for o in occurrences] == ["2024-01-01", "2024-01-08"]


def test_recurrence_ended_before_range_yields_nothing():
    weekly = make_recurring(DayOfWeek.MONDAY, id=5, until="2023-12-31")
    assert resolve([weekly], {}, WEEK_START, WEEK_END) == []


def test_bad_records_are_skipped_not_fatal():
    good = make_recurring(DayOfWeek.FRIDAY, id=1)
    bad_date = make_one_off("2024-13-45", id=2)
    bad_until = make_recurring(DayOfWeek.FRIDAY, id=3, until="soon")
    bad_times = make_recurring(DayOfWeek.FRIDAY, "11:00", "10:00", id=4)
    occurrences, skipped = resolve_with_skips([bad_date, good, bad_until, bad_times], {}, WEEK_START, WEEK_END)
    assert [o.activity_id for o in occurrences] == [1]
    assert [s.template.id for s in skipped] == [2, 3, 4]
    # resolve() drops the skips and keeps the rest
    assert [o.activity_id for o in resolve([bad_date, good], {}, WEEK_START, WEEK_END)] == [1]


def test_resolution_is_idempotent():
    templates = [
        make_recurring(DayOfWeek.MONDAY, id=1),
        make_recurring(DayOfWeek.THURSDAY, "18:00", "19:00", id=2),
        make_one_off("2024-01-05", id=3),
    ]
    cancelled = {2: {"2024-01-04"}}
    assert resolve(templates, cancelled, WEEK_START, WEEK_END) == resolve(templates, cancelled, WEEK_START, WEEK_END)


def test_inverted_range_is_empty():
    assert resolve([make_recurring(DayOfWeek.MONDAY, id=1)], {}, WEEK_END, WEEK_START) == []


def test_sort_and_group():
    templates = [
        make_recurring(DayOfWeek.MONDAY, "13:00", "14:00", id=1, name="Lunch"),
        make_recurring(DayOfWeek.MONDAY, "08:00", "09:00", id=2, name="Run"),
        make_one_off("2024-01-02", "07:00", "08:00", id=3, name="Call"),
    ]
    occurrences = resolve(templates, {}, WEEK_START, WEEK_END)
    assert [o.name for o in sort_by_start(occurrences)] == ["Run", "Lunch", "Call"]
    grouped = group_by_date(occurrences)
    assert [o.name for o in grouped["2024-01-01"]] == ["Run", "Lunch"]
    assert list(grouped) == ["2024-01-01", "2024-01-02"]
