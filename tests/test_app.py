import json
import logging

import pytest

from weekly_planner import app
from weekly_planner.logging_setup import JsonFormatter


@pytest.fixture()
def cli(monkeypatch, tmp_path, qapp):
    monkeypatch.setenv("WEEKLY_PLANNER_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("WEEKLY_PLANNER_OWNER", "tester")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    # Leave pytest's log capture alone and keep the OS keyring out of tests
    monkeypatch.setattr(app, "configure_logging", lambda *a, **k: None)
    monkeypatch.setattr(app, "load_api_key", lambda base_dir: None)

    def invoke(*args):
        return app.run(["weekly-planner", *args])

    return invoke


def test_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("WEEKLY_PLANNER_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("WEEKLY_PLANNER_LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("WEEKLY_PLANNER_OWNER", raising=False)
    config = app.AppConfig.from_env()
    assert config.db_path == tmp_path / "weekly_planner.sqlite"
    assert config.log_level == "DEBUG"
    assert config.owner_id == "local"


def test_seed_list_and_delete(cli, capsys):
    assert cli("seed") == 0
    assert "Added 6 activities" in capsys.readouterr().out
    assert cli("list") == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 6
    first_id = lines[0].split()[0].lstrip("#")
    assert cli("delete", first_id) == 0
    assert cli("delete", first_id) == 1
    assert f"No activity #{first_id}" in capsys.readouterr().err


def test_add_reports_conflict(cli, capsys):
    assert cli("add", "Gym", "07:00", "08:00", "--day", "monday") == 0
    assert "Created #" in capsys.readouterr().out
    assert cli("add", "Standup", "07:30", "07:45", "--day", "Monday") == 1
    assert 'Time conflicts with "Gym" (07:00 - 08:00)' in capsys.readouterr().err
    assert cli("add", "Later", "08:00", "09:00", "--day", "monday") == 0
    assert cli("add", "Nap", "13:00", "14:00", "--day", "someday") == 2


def test_week_view_lists_every_day(cli, capsys):
    assert cli("add", "Gym", "07:00", "08:00", "--day", "tuesday") == 0
    capsys.readouterr()
    assert cli("week") == 0
    out = capsys.readouterr().out
    for label in ("Monday:", "Tuesday:", "Sunday:"):
        assert label in out
    assert "07:00-08:00 * Gym" in out


def test_plan_requires_key(cli, capsys):
    assert cli("plan", "gym every weekday") == 2
    assert "Gemini API key is not configured" in capsys.readouterr().err


def test_json_formatter_keeps_prefixed_extras():
    record = logging.LogRecord("weekly_planner.test", logging.INFO, __file__, 1, "hello %s", ("there",), None)
    record._json_activity_id = 7
    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "hello there"
    assert payload["level"] == "INFO"
    assert payload["activity_id"] == 7
    assert payload["ts"].endswith("Z")


def test_skip_unknown_activity_reports_error(cli, capsys):
    assert cli("skip", "999", "--date", "2024-01-02") == 1
    assert "No activity #999" in capsys.readouterr().err
