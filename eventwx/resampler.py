"""Expand NWS gridpoint valid-time spans into a fixed 24-hour series.

Gridpoint fields arrive as `{"validTime": "<start>/<duration>", "value": v}`
entries whose spans range from one hour to several days. Each field is
expanded into a mapping keyed by the UTC hour the span covers (later entries
overwrite earlier ones), then read back at 24 consecutive hourly anchors.
Hours no span covers stay None.
"""
from __future__ import annotations

import datetime as dt
import re
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from eventwx.conversions import (
    celsius_to_fahrenheit,
    deg_to_compass,
    kmh_to_mph,
    mm_to_inches,
    round1,
    round2,
    round_int,
)
from eventwx.domain import HourlyPoint
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="resampler")

HOUR_MS = 3_600_000
MINUTE_MS = 60_000
DAY_MS = 24 * HOUR_MS

_DURATION_RE = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?)?$"
)

# Converter applied to the raw gridpoint value when a slot is read.
FIELD_CONVERTERS: Dict[str, Callable[[Optional[float]], Optional[float]]] = {
    "temperature": lambda v: round1(celsius_to_fahrenheit(v)),
    "dewpoint": lambda v: round1(celsius_to_fahrenheit(v)),
    "relativeHumidity": round_int,
    "windSpeed": lambda v: round1(kmh_to_mph(v)),
    "windDirection": round_int,
    "windGust": lambda v: round1(kmh_to_mph(v)),
    "probabilityOfPrecipitation": round_int,
    "skyCover": round_int,
    "quantitativePrecipitation": lambda v: round2(mm_to_inches(v)),
}

TRACKED_FIELDS: Sequence[str] = tuple(FIELD_CONVERTERS)

EXPECTED_GRID_UNITS = {
    "temperature": "wmoUnit:degC",
    "dewpoint": "wmoUnit:degC",
    "relativeHumidity": "wmoUnit:percent",
    "windSpeed": "wmoUnit:km_h-1",
    "windDirection": "wmoUnit:degree_(angle)",
    "windGust": "wmoUnit:km_h-1",
    "probabilityOfPrecipitation": "wmoUnit:percent",
    "skyCover": "wmoUnit:percent",
    "quantitativePrecipitation": "wmoUnit:mm",
}


def parse_duration_ms(duration: Optional[str]) -> int:
    """
    Parse an ISO-8601 duration such as "PT3H" or "P1DT6H" into milliseconds.

    Only day, hour and minute components are understood. Anything that does
    not parse, or parses to zero, counts as one hour.
    """
    match = _DURATION_RE.match((duration or "").strip().upper())
    if not match:
        return HOUR_MS
    ms = (
        int(match.group("days") or 0) * DAY_MS
        + int(match.group("hours") or 0) * HOUR_MS
        + int(match.group("minutes") or 0) * MINUTE_MS
    )
    return ms or HOUR_MS


def parse_instant(value: str) -> dt.datetime:
    """Parse an ISO instant into an aware UTC datetime (naive values are taken as UTC)."""
    parsed = dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def hour_key(instant: dt.datetime) -> str:
    """Normalize an instant to the ISO key of the UTC hour containing it."""
    utc = instant.astimezone(dt.timezone.utc).replace(minute=0, second=0, microsecond=0)
    return utc.strftime("%Y-%m-%dT%H:00:00Z")


def anchor_hours(now: dt.datetime, count: int = 24) -> List[dt.datetime]:
    """
    Return `count` consecutive UTC hours starting at the next full hour.

    The first hour is always strictly after `now`, so an invocation exactly
    on an hour boundary starts one hour later.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)
    now = now.astimezone(dt.timezone.utc)
    start = now.replace(minute=0, second=0, microsecond=0)
    if start <= now:
        start += dt.timedelta(hours=1)
    return [start + dt.timedelta(hours=i) for i in range(count)]


def _numeric(value: object) -> Optional[float]:
    """Return `value` when it is a real number, otherwise None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def expand_to_hourly(entries: Optional[Sequence[Mapping]]) -> Dict[str, Optional[float]]:
    """
    Expand valid-time entries into {hour_key: value}, last write wins.

    Entries that are not objects, or whose start is missing or unparseable,
    are skipped. Non-numeric values are stored as None.
    """
    hourly: Dict[str, Optional[float]] = {}
    if not isinstance(entries, (list, tuple)):
        return hourly
    for entry in entries:
        valid_time = entry.get("validTime") if isinstance(entry, Mapping) else None
        if not isinstance(valid_time, str):
            logger.debug("Skipping malformed gridpoint entry", extra={"entry": entry})
            continue
        start_str, _, duration_str = valid_time.partition("/")
        try:
            start = parse_instant(start_str)
            end = start + dt.timedelta(milliseconds=parse_duration_ms(duration_str))
        except (ValueError, OverflowError):
            logger.debug("Skipping entry with unparseable start", extra={"validTime": valid_time})
            continue

        value = _numeric(entry.get("value"))
        t = start
        while t < end:
            hourly[hour_key(t)] = value
            t += dt.timedelta(hours=1)
    return hourly


def _warn_on_unexpected_units(properties: Mapping) -> None:
    """Log fields whose unit of measure differs from the one the converters assume."""
    for field, expected in EXPECTED_GRID_UNITS.items():
        prop = properties.get(field)
        if not isinstance(prop, Mapping):
            continue
        actual = prop.get("uom")
        if actual and actual != expected:
            logger.warning(
                "Unexpected gridpoint unit",
                extra={"field": field, "unit": actual, "expected": expected},
            )


def resample_gridpoint(
    properties: Mapping,
    *,
    now: Optional[dt.datetime] = None,
    hours: int = 24,
) -> List[HourlyPoint]:
    """Resample the tracked fields of a gridpoint `properties` object to hourly points."""
    now = now or dt.datetime.now(dt.timezone.utc)
    _warn_on_unexpected_units(properties)

    expanded: Dict[str, Dict[str, Optional[float]]] = {}
    for field in TRACKED_FIELDS:
        prop = properties.get(field)
        entries = prop.get("values") if isinstance(prop, Mapping) else None
        expanded[field] = expand_to_hourly(entries)

    points: List[HourlyPoint] = []
    for slot in anchor_hours(now, hours):
        key = hour_key(slot)
        values: Dict[str, Optional[float]] = {}
        for field, convert in FIELD_CONVERTERS.items():
            raw = expanded[field].get(key)
            values[field] = convert(raw) if raw is not None else None
        points.append(
            HourlyPoint(
                time=slot,
                values=values,
                wind_cardinal=deg_to_compass(values["windDirection"]),
            )
        )

    logger.debug(
        "Resampled gridpoint forecast",
        extra={"first_hour": points[0].time.isoformat() if points else None, "hours": len(points)},
    )
    return points
