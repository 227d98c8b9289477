"""Frame-time lookups for MRMS radar (WMS) and GOES satellite (SSEC RealEarth)."""
from __future__ import annotations

import datetime as dt
import re
from typing import Callable, List, Optional, Sequence

from eventwx.data_sources import http
from eventwx.resampler import parse_instant
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="imagery_client")

_TIME_DIMENSION_RE = re.compile(r'<Dimension[^>]*name="time"[^>]*>([^<]+)</Dimension>', re.IGNORECASE)
_SSEC_TIME_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})\.(\d{2})(\d{2})(\d{2})$")

RADAR_MIN_RECENT = 3
RADAR_FALLBACK_COUNT = 15
SATELLITE_MIN_RECENT = 2
SATELLITE_FALLBACK_COUNT = 6


def fetch_radar_capabilities(wms_url: str) -> str:
    """Fetch the WMS GetCapabilities document."""
    return http.fetch_text(wms_url, params={"service": "wms", "version": "1.3.0", "request": "GetCapabilities"})


def parse_wms_times(capabilities_xml: str) -> List[str]:
    """Extract the comma-separated `time` dimension values from a capabilities document."""
    match = _TIME_DIMENSION_RE.search(capabilities_xml or "")
    if not match or not match.group(1).strip():
        raise ValueError("No time dimension found in WMS capabilities")
    return [t.strip() for t in match.group(1).split(",") if t.strip()]


def fetch_satellite_times(times_url: str, channel: str) -> List[str]:
    """Return every RealEarth frame time published for a product."""
    data = http.fetch_json(times_url, params={"products": channel})
    return list(data.get(channel) or [])


def parse_ssec_time(value: str) -> dt.datetime:
    """Parse a RealEarth "YYYYMMDD.HHMMSS" UTC stamp."""
    match = _SSEC_TIME_RE.match(value.strip())
    if not match:
        raise ValueError(f"Unrecognized RealEarth time '{value}'")
    year, month, day, hour, minute, second = (int(g) for g in match.groups())
    return dt.datetime(year, month, day, hour, minute, second, tzinfo=dt.timezone.utc)


def select_recent(
    times: Sequence[str],
    parse: Callable[[str], dt.datetime],
    *,
    now: dt.datetime,
    window_minutes: int,
    min_count: int,
    fallback_count: int,
) -> List[str]:
    """
    Keep the times inside the trailing window.

    When fewer than `min_count` qualify, the last `fallback_count` published
    times are returned instead. Unparseable stamps never count as recent.
    """
    cutoff = now - dt.timedelta(minutes=window_minutes)
    recent = []
    for value in times:
        try:
            if parse(value) >= cutoff:
                recent.append(value)
        except ValueError:
            logger.debug("Skipping unparseable frame time", extra={"time": value})
    if len(recent) < min_count and times:
        return list(times[-fallback_count:])
    return recent


def select_radar_times(times: Sequence[str], *, now: Optional[dt.datetime] = None,
                       window_minutes: int = 30) -> List[str]:
    return select_recent(
        times, parse_instant,
        now=now or dt.datetime.now(dt.timezone.utc),
        window_minutes=window_minutes,
        min_count=RADAR_MIN_RECENT,
        fallback_count=RADAR_FALLBACK_COUNT,
    )


def select_satellite_times(times: Sequence[str], *, now: Optional[dt.datetime] = None,
                           window_minutes: int = 30) -> List[str]:
    return select_recent(
        times, parse_ssec_time,
        now=now or dt.datetime.now(dt.timezone.utc),
        window_minutes=window_minutes,
        min_count=SATELLITE_MIN_RECENT,
        fallback_count=SATELLITE_FALLBACK_COUNT,
    )
