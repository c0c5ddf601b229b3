from __future__ import annotations

"""Gemini API client and natural-language schedule generation.

The model only proposes candidate activities. Candidates are parsed and
format-checked here, then validated for conflicts by
:func:`weekly_planner.conflicts.validate_schedule` before anything is saved.

Network calls are kept minimal; tests mock HTTP transport.
"""

from dataclasses import dataclass
from datetime import date, timedelta
import json
import logging
import re
import time
from typing import Any, Sequence

import httpx

from .conflicts import validate_schedule
from .models import ActivityTemplate, OneOffAnchor, RecurringAnchor
from .time_utils import day_index, format_date_to_iso, is_valid_time, parse_day, parse_time

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.5-flash"
FALLBACK_COLOR = "#3B82F6"
PALETTE = (
    "#EF4444", "#F97316", "#F59E0B", "#22C55E", "#14B8A6",
    "#06B6D4", "#3B82F6", "#6366F1", "#8B5CF6", "#EC4899",
)

_HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")
_CODE_FENCE = re.compile(r"^```(?:json)?\s*\n?|\n?```\s*$")


class GeminiError(Exception):
    pass


@dataclass(slots=True)
class GeminiClientConfig:
    api_key: str
    model: str = DEFAULT_MODEL
    timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.75


class GeminiClient:
    def __init__(self, config: GeminiClientConfig, transport: httpx.BaseTransport | None = None):
        self._config = config
        self._client = httpx.Client(timeout=config.timeout, transport=transport)

    def close(self) -> None:  # pragma: no cover simple
        self._client.close()

    def generate_text(self, prompt: str) -> str:
        """Return the concatenated text parts of the first response, or raise GeminiError."""
        api_key = self._config.api_key
        if not api_key:
            raise GeminiError("API key missing")
        url = GEMINI_ENDPOINT.format(model=self._config.model)
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        attempt = 0
        while True:
            try:
                resp = self._client.post(url, params={"key": api_key}, json=body)
                if resp.status_code == 429:
                    raise GeminiError("rate_limited")
                if resp.status_code >= 400:
                    raise GeminiError(f"HTTP {resp.status_code}: {resp.text[:200]}")
                return _response_text(resp.json())
            except GeminiError:
                attempt += 1
                if attempt > self._config.max_retries:
                    raise
                time.sleep(self._config.backoff_base * (2 ** (attempt - 1)))
            except (httpx.HTTPError, ValueError) as e:
                attempt += 1
                if attempt > self._config.max_retries:
                    raise GeminiError(str(e)) from e
                time.sleep(self._config.backoff_base * (2 ** (attempt - 1)))


def _response_text(data: dict[str, Any]) -> str:
    blocks = []
    for c in data.get("candidates", []):
        for part in c.get("content", {}).get("parts", []):
            t = part.get("text")
            if t:
                blocks.append(t)
    return "\n".join(blocks)


# --- Prompts ----------------------------------------------------------------

def build_schedule_prompt(week_start: date, recurring: Sequence[ActivityTemplate]) -> str:
    if recurring:
        lines = "\n".join(
            f"- {a.name}: {a.day_of_week.label if a.day_of_week else '?'} from {a.start_time} to {a.end_time}"
            for a in recurring
        )
        context = f"\n\nExisting recurring activities that must be respected (do not create conflicts):\n{lines}"
    else:
        context = "\n\nNo existing recurring activities."
    return (
        "You are a helpful schedule assistant. Parse the user's natural language request "
        "and generate a weekly schedule as a JSON array.\n\n"
        f"Context:\n- Week starts on: {week_start.strftime('%A, %B %d, %Y')}{context}\n\n"
        "Each element must have: name, day (monday..sunday), startTime and endTime "
        '(24-hour "HH:mm"), color (one of ' + ", ".join(PALETTE) + "), isRecurring "
        "(true when the activity repeats weekly).\n"
        'Expand "every day"/"daily" to all 7 days, "weekdays" to Monday-Friday and '
        '"weekend" to Saturday-Sunday. If only a start time is given assume 1 hour. '
        "Do not create activities that conflict with existing recurring activities.\n"
        "Return ONLY a valid JSON array, no markdown, no explanation."
    )


def build_full_prompt(system_prompt: str, user_prompt: str) -> str:
    return f"{system_prompt}\n\nUser request: {user_prompt}\n\nGenerate the schedule as JSON:"


# --- Response parsing -------------------------------------------------------

def parse_schedule_response(text: str, owner_id: str, week_start: date) -> list[ActivityTemplate]:
    """Candidate templates from model output; invalid entries are skipped.

    One-off entries are dated within the week starting at ``week_start``.
    Raises GeminiError when the text is not a JSON array or nothing valid remains.
    """
    cleaned = _CODE_FENCE.sub("", text.strip())
    try:
        items = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("could not parse schedule response: %s", e)
        raise GeminiError("Failed to parse AI response. Please try rephrasing your request.") from e
    if not isinstance(items, list):
        raise GeminiError("AI response was not a list of activities")

    candidates: list[ActivityTemplate] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name, start, end = item.get("name"), item.get("startTime"), item.get("endTime")
        day = parse_day(item.get("day"))
        if not (name and day and start and end):
            logger.warning("skipping incomplete generated activity: %r", item)
            continue
        if not (is_valid_time(start) and is_valid_time(end)):
            logger.warning("skipping generated activity with bad time: %r", item)
            continue
        if parse_time(start) >= parse_time(end):
            logger.warning("skipping generated activity ending before it starts: %r", item)
            continue
        color = item.get("color")
        if not (isinstance(color, str) and _HEX_COLOR.fullmatch(color)):
            color = FALLBACK_COLOR
        if item.get("isRecurring"):
            anchor: RecurringAnchor | OneOffAnchor = RecurringAnchor(day_of_week=day)
        else:
            on = week_start + timedelta(days=day_index(day))
            anchor = OneOffAnchor(activity_date=format_date_to_iso(on), day_of_week=day)
        candidates.append(
            ActivityTemplate(
                id=None,
                owner_id=owner_id,
                name=str(name).strip(),
                color=color,
                anchor=anchor,
                start_time=start,
                end_time=end,
            )
        )
    if not candidates:
        raise GeminiError("No valid activities were generated. Please try rephrasing your request.")
    return candidates


class SchedulePlanner:
    def __init__(self, client: GeminiClient):
        self._client = client

    def generate(
        self,
        request: str,
        recurring: Sequence[ActivityTemplate],
        week_start: date,
        owner_id: str,
    ) -> tuple[list[ActivityTemplate], list[str]]:
        """Return (candidates, conflict messages) for a natural-language request."""
        prompt = build_full_prompt(build_schedule_prompt(week_start, recurring), request)
        text = self._client.generate_text(prompt)
        candidates = parse_schedule_response(text, owner_id, week_start)
        conflicts = validate_schedule(candidates, recurring)
        if conflicts:
            logger.info("generated schedule has %d conflict(s)", len(conflicts))
        return candidates, conflicts


__all__ = [
    "GeminiClient",
    "GeminiClientConfig",
    "GeminiError",
    "SchedulePlanner",
    "build_schedule_prompt",
    "build_full_prompt",
    "parse_schedule_response",
]
