"""Prompt building and response parsing for the key-points briefing."""

from __future__ import annotations

import json
import re
from typing import List, Sequence

from eventwx.domain import EventConfig, HourlyPoint

SYSTEM_PROMPT = (
    "You are a concise operational meteorologist briefing staff at a large outdoor event. "
    "The event is {name} at {location}. It starts at {start} local time ({timezone}). "
    "Given the NWS gridpoint forecast data below, produce exactly 4 short bullet points summarizing "
    "the weather details an event operations team needs at a glance for the next 24 hours. "
    "Focus on temperature trends, precipitation risk and timing, wind impacts and sky conditions. "
    "Be specific with numbers. Each bullet should be one short sentence. Do not use markdown formatting. "
    'Return ONLY a JSON array of strings, e.g. ["bullet 1", "bullet 2", "bullet 3", "bullet 4"].'
)

_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def _fmt(value, suffix: str = "", *, digits: int = 0) -> str:
    if value is None:
        return "--"
    return f"{value:.{digits}f}{suffix}"


def format_hour_line(point: HourlyPoint, event: EventConfig) -> str:
    """One compact line per forecast hour, e.g. "Sun 3 PM: 61.2F, Wind NW 9 mph G15, PoP 10%, Sky 40%"."""
    local = point.time.astimezone(event.tzinfo())
    hour12 = local.hour % 12 or 12
    label = f"{local.strftime('%a')} {hour12} {'AM' if local.hour < 12 else 'PM'}"

    gust = point.value("windGust")
    qpf = point.value("quantitativePrecipitation")
    line = (
        f"{label}: {_fmt(point.value('temperature'), 'F', digits=1)}, "
        f"Wind {point.wind_cardinal or ''} {_fmt(point.value('windSpeed'))} mph"
        f"{' G' + _fmt(gust) if gust else ''}, "
        f"PoP {_fmt(point.value('probabilityOfPrecipitation'), '%')}, "
        f"Sky {_fmt(point.value('skyCover'), '%')}"
    )
    if qpf:
        line += f', QPF {qpf:.2f}"'
    return line


def build_key_points_messages(hours: Sequence[HourlyPoint], event: EventConfig) -> list[dict]:
    """Prepare system+user messages for the briefing call."""
    system = SYSTEM_PROMPT.format(
        name=event.name,
        location=event.location,
        start=event.start_date.strftime("%Y-%m-%d %H:%M"),
        timezone=event.timezone,
    )
    forecast_text = "\n".join(format_hour_line(h, event) for h in hours)
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": f"Here is the hourly NWS gridpoint forecast for the next 24 hours:\n\n{forecast_text}"},
    ]


def _as_bullets(parsed) -> List[str] | None:
    if isinstance(parsed, list):
        return [str(item).strip() for item in parsed if str(item).strip()]
    return None


def parse_bullets(content: str) -> List[str]:
    """
    Extract bullets from a model reply.

    Tries the whole reply as a JSON array, then the first bracketed array in
    it, then falls back to non-empty lines with list markers stripped.
    """
    text = (content or "").strip()
    if text.startswith("```"):
        text = "\n".join(line for line in text.splitlines() if not line.strip().startswith("```")).strip()

    try:
        bullets = _as_bullets(json.loads(text))
        if bullets is not None:
            return bullets
    except ValueError:
        pass

    match = _ARRAY_RE.search(text)
    if match:
        try:
            bullets = _as_bullets(json.loads(match.group(0)))
            if bullets is not None:
                return bullets
        except ValueError:
            pass

    return [_LIST_MARKER_RE.sub("", line).strip() for line in text.splitlines() if line.strip()]
