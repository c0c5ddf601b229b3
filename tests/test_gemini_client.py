import httpx
import pytest

from weekly_planner.gemini_planner import GeminiClient, GeminiClientConfig, GeminiError, SchedulePlanner
from weekly_planner.models import DayOfWeek

from factories import WEEK_START, make_recurring


def _reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_generate_text_joins_parts_and_sends_key():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        data = {"candidates": [{"content": {"parts": [{"text": "first"}, {"text": "second"}]}}]}
        return httpx.Response(200, json=data)

    client = GeminiClient(GeminiClientConfig(api_key="test-key"), transport=httpx.MockTransport(handler))
    assert client.generate_text("hello") == "first\nsecond"
    assert "gemini-2.5-flash:generateContent" in seen["url"]
    assert "key=test-key" in seen["url"]


def test_generate_text_rate_limit_retry():
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        if calls["n"] < 2:
            return httpx.Response(429, text="Too Many Requests")
        return httpx.Response(200, json=_reply("[]"))

    transport = httpx.MockTransport(handler)
    client = GeminiClient(GeminiClientConfig(api_key="k", max_retries=2, backoff_base=0.01), transport=transport)
    assert client.generate_text("plan") == "[]"
    assert calls["n"] == 2


def test_generate_text_failure_after_retries():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="Server Error"))
    client = GeminiClient(GeminiClientConfig(api_key="k", max_retries=1, backoff_base=0.01), transport=transport)
    with pytest.raises(GeminiError):
        client.generate_text("plan")


def test_missing_key_fails_fast():
    def handler(request):  # pragma: no cover - must not be called
        raise AssertionError("no request expected")

    client = GeminiClient(GeminiClientConfig(api_key=""), transport=httpx.MockTransport(handler))
    with pytest.raises(GeminiError, match="API key missing"):
        client.generate_text("plan")


def test_planner_returns_candidates_and_conflicts():
    text = (
        "```json\n"
        '[{"name": "Swim", "day": "monday", "startTime": "06:30", "endTime": "07:30", "isRecurring": true},'
        ' {"name": "Lunch", "day": "Tuesday", "startTime": "12:00", "endTime": "13:00", "color": "#22C55E"}]\n'
        "```"
    )
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=_reply(text)))
    planner = SchedulePlanner(GeminiClient(GeminiClientConfig(api_key="k"), transport=transport))
    recurring = [make_recurring(DayOfWeek.MONDAY, "06:00", "07:00", id=1, name="Gym")]
    candidates, conflicts = planner.generate("swim mondays, lunch tuesday", recurring, WEEK_START, "u1")
    assert [c.name for c in candidates] == ["Swim", "Lunch"]
    assert conflicts == ['Swim on Monday conflicts with recurring "Gym" (06:00 - 07:00)']
