import pytest

from weekly_planner.gemini_planner import (
    FALLBACK_COLOR,
    GeminiError,
    build_full_prompt,
    build_schedule_prompt,
    parse_schedule_response,
)
from weekly_planner.models import DayOfWeek, OneOffAnchor, RecurringAnchor

from factories import WEEK_START, make_recurring


def test_parse_schedule_response_builds_templates():
    sample = (
        '[{"name": " Gym ", "day": "monday", "startTime": "06:00", "endTime": "07:00", '
        '"color": "#EF4444", "isRecurring": true},'
        ' {"name": "Dentist", "day": "thursday", "startTime": "9:30", "endTime": "10:15", "color": "blue"}]'
    )
    gym, dentist = parse_schedule_response(sample, "u1", WEEK_START)
    assert gym.name == "Gym" and gym.owner_id == "u1" and gym.id is None
    assert gym.anchor == RecurringAnchor(DayOfWeek.MONDAY)
    assert gym.color == "#EF4444"
    # One-offs land on that weekday of the requested week
    assert dentist.anchor == OneOffAnchor("2024-01-04", DayOfWeek.THURSDAY)
    assert dentist.color == FALLBACK_COLOR


def test_parse_schedule_response_skips_invalid_entries():
    sample = (
        "[{\"name\": \"NoDay\", \"startTime\": \"06:00\", \"endTime\": \"07:00\"},"
        " {\"name\": \"BadDay\", \"day\": \"someday\", \"startTime\": \"06:00\", \"endTime\": \"07:00\"},"
        " {\"name\": \"BadTime\", \"day\": \"friday\", \"startTime\": \"6am\", \"endTime\": \"07:00\"},"
        " {\"name\": \"Backwards\", \"day\": \"friday\", \"startTime\": \"10:00\", \"endTime\": \"09:00\"},"
        " \"junk\","
        " {\"name\": \"Ok\", \"day\": \"friday\", \"startTime\": \"06:00\", \"endTime\": \"07:00\"}]"
    )
    templates = parse_schedule_response(sample, "u1", WEEK_START)
    assert [t.name for t in templates] == ["Ok"]


def test_parse_schedule_response_errors():
    with pytest.raises(GeminiError, match="parse"):
        parse_schedule_response("Here is your plan!", "u1", WEEK_START)
    with pytest.raises(GeminiError):
        parse_schedule_response('{"name": "x"}', "u1", WEEK_START)
    with pytest.raises(GeminiError, match="No valid activities"):
        parse_schedule_response("[]", "u1", WEEK_START)


def test_prompt_lists_recurring_activities():
    recurring = [make_recurring(DayOfWeek.TUESDAY, "18:00", "19:00", name="Choir")]
    prompt = build_schedule_prompt(WEEK_START, recurring)
    assert "Monday, January 01, 2024" in prompt
    assert "- Choir: Tuesday from 18:00 to 19:00" in prompt
    assert "No existing recurring activities." in build_schedule_prompt(WEEK_START, [])
    full = build_full_prompt(prompt, "gym every weekday at 6")
    assert full.endswith("User request: gym every weekday at 6\n\nGenerate the schedule as JSON:")
