"""Cached fetch services for every dashboard panel.

Each `get_*` function consults the TTL cache first, fetches and normalizes on
a miss, and caches only successful results. Upstream failures come back as
the panel's model with `error` set rather than as exceptions. Pass
`force=True` to skip the cache read (the refresh scheduler does).
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

import requests

from eventwx import cache_manager, event_config
from eventwx.config import settings
from eventwx.data_sources import ObservationSource, build_observation_sources
from eventwx.data_sources import imagery_client, nws_client
from eventwx.domain import (
    AlertsSummary,
    CurrentWeather,
    EventConfig,
    GridpointForecast,
    KeyPoints,
    RadarTimes,
    SatelliteTimes,
)
from eventwx.key_points import build_key_points_messages, parse_bullets
from eventwx.ollama_client import ollama_client
from eventwx.resampler import resample_gridpoint
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="weather_service")

FETCH_ERRORS = (requests.RequestException, KeyError, ValueError, IndexError)

SATELLITE_CHANNELS = {
    "G18-ABI-CONUS-BAND02": "Visible (0.64um)",
    "G18-ABI-CONUS-BAND09": "Water Vapor (6.9um)",
    "G18-ABI-CONUS-BAND13": "Clean IR (10.3um)",
}

RADAR_SOURCE = "MRMS CONUS Base Reflectivity (QCD)"
SATELLITE_SOURCE = "GOES-18 (SSEC RealEarth)"

_observation_sources: Optional[List[ObservationSource]] = None


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _location_key(prefix: str, event: EventConfig) -> str:
    return f"{prefix}:{event.latitude},{event.longitude}"


# ── NWS point + gridpoint ───────────────────────────────────


def get_point_metadata(event: Optional[EventConfig] = None, *, force: bool = False) -> Dict[str, Any]:
    """Return the NWS grid for the venue. Raises on fetch failure."""
    event = event or event_config.get_event_config()
    key = _location_key("nws_point", event)
    if not force:
        cached = cache_manager.cache_get(key)
        if cached is not None:
            return cached
    meta = nws_client.fetch_point_metadata(event.latitude, event.longitude)
    cache_manager.cache_put(key, meta, settings.cache_ttl_gridpoint_meta)
    return meta


def get_gridpoint_forecast(*, force: bool = False, now: Optional[dt.datetime] = None) -> GridpointForecast:
    """
    Return the next 24 hours of the venue's gridpoint forecast.

    The raw gridpoint is what gets cached; the hourly window is recomputed
    on every call so it always starts at the upcoming hour.
    """
    event = event_config.get_event_config()
    key = _location_key("gridpoint_raw", event)
    try:
        meta = get_point_metadata(event, force=force)
        raw = None if force else cache_manager.cache_get(key)
        if raw is None:
            properties = nws_client.fetch_gridpoint(meta["grid_id"], meta["grid_x"], meta["grid_y"])
            raw = {"meta": meta, "properties": properties}
            cache_manager.cache_put(key, raw, settings.cache_ttl_forecast)
        hours = resample_gridpoint(raw["properties"], now=now, hours=settings.forecast_hours)
    except FETCH_ERRORS as exc:
        logger.warning("Gridpoint forecast fetch failed", extra={"error": str(exc)})
        return GridpointForecast.failed(f"Unable to fetch gridpoint forecast: {exc}")

    grid = raw["meta"]
    return GridpointForecast(
        timestamp=_now(),
        source=f"NWS Gridpoint Forecast ({grid['grid_id']} {grid['grid_x']},{grid['grid_y']})",
        hours=hours,
        adverse_thresholds=event.adverse_conditions,
    )


# ── Current observations ────────────────────────────────────


def observation_sources() -> List[ObservationSource]:
    """Return the configured observation sources, building them on first use."""
    global _observation_sources
    if _observation_sources is None:
        _observation_sources = build_observation_sources(lambda ev: get_point_metadata(ev))
    return _observation_sources


def use_observation_sources_for_tests(sources: Optional[List[ObservationSource]]) -> None:
    """Override the observation sources; None rebuilds from settings on next use."""
    global _observation_sources
    _observation_sources = sources


def get_current_weather(*, force: bool = False) -> CurrentWeather:
    """Latest observation from the first source that answers."""
    event = event_config.get_event_config()
    key = _location_key("weather_current", event)
    if not force:
        cached = cache_manager.cache_get(key)
        if cached is not None:
            return CurrentWeather.model_validate(cached)

    for source in observation_sources():
        try:
            current = source.fetch_current(event)
        except FETCH_ERRORS as exc:
            logger.warning("Observation source failed", extra={"source": source.name, "error": str(exc)})
            continue
        cache_manager.cache_put(key, current.model_dump(mode="json"), settings.cache_ttl_weather)
        return current

    return CurrentWeather(timestamp=_now(), error="Unable to fetch weather data")


# ── Alerts ──────────────────────────────────────────────────


def get_alerts(*, force: bool = False) -> AlertsSummary:
    """Active NWS alerts for the venue point."""
    event = event_config.get_event_config()
    key = _location_key("alerts", event)
    if not force:
        cached = cache_manager.cache_get(key)
        if cached is not None:
            return AlertsSummary.model_validate(cached)
    try:
        features = nws_client.fetch_active_alerts(event.latitude, event.longitude)
    except FETCH_ERRORS as exc:
        logger.warning("Alerts fetch failed", extra={"error": str(exc)})
        return AlertsSummary(timestamp=_now(), error="Unable to fetch alert data")

    alerts = [nws_client.feature_to_alert(f) for f in features]
    summary = AlertsSummary(timestamp=_now(), alerts=alerts, count=len(alerts))
    cache_manager.cache_put(key, summary.model_dump(mode="json"), settings.cache_ttl_alerts)
    return summary


# ── Imagery frame times ─────────────────────────────────────


def get_radar_times(*, force: bool = False, now: Optional[dt.datetime] = None) -> RadarTimes:
    """Recent MRMS reflectivity frame times."""
    key = "radar_times"
    if not force:
        cached = cache_manager.cache_get(key)
        if cached is not None:
            return RadarTimes.model_validate(cached)
    try:
        all_times = imagery_client.parse_wms_times(imagery_client.fetch_radar_capabilities(settings.radar_wms_url))
    except FETCH_ERRORS as exc:
        logger.warning("Radar capabilities fetch failed", extra={"error": str(exc)})
        return RadarTimes(timestamp=_now(), error="Unable to fetch radar times")

    times = imagery_client.select_radar_times(all_times, now=now, window_minutes=settings.radar_loop_minutes)
    result = RadarTimes(
        timestamp=_now(),
        source=RADAR_SOURCE,
        wms_url=settings.radar_wms_url,
        layer=settings.radar_layer,
        style=settings.radar_style,
        times=times,
        total_available=len(all_times),
        time_count=len(times),
    )
    cache_manager.cache_put(key, result.model_dump(mode="json"), settings.cache_ttl_radar)
    return result


def get_satellite_times(channel: Optional[str] = None, *, force: bool = False,
                        now: Optional[dt.datetime] = None) -> SatelliteTimes:
    """Recent GOES frame times for a RealEarth channel. Unknown channels raise ValueError."""
    channel = channel or settings.satellite_default_channel
    if channel not in SATELLITE_CHANNELS:
        raise ValueError(f"Unknown satellite channel '{channel}'")

    key = f"satellite_times:{channel}"
    if not force:
        cached = cache_manager.cache_get(key)
        if cached is not None:
            return SatelliteTimes.model_validate(cached)
    try:
        all_times = imagery_client.fetch_satellite_times(settings.satellite_times_url, channel)
    except FETCH_ERRORS as exc:
        logger.warning("Satellite times fetch failed", extra={"channel": channel, "error": str(exc)})
        return SatelliteTimes(timestamp=_now(), channel=channel,
                              error=f"Unable to fetch satellite times: {exc}")

    times = imagery_client.select_satellite_times(all_times, now=now, window_minutes=settings.satellite_loop_minutes)
    result = SatelliteTimes(
        timestamp=_now(),
        source=SATELLITE_SOURCE,
        tile_url=settings.satellite_tile_url,
        channel=channel,
        channel_name=SATELLITE_CHANNELS[channel],
        times=times,
        total_available=len(all_times),
        time_count=len(times),
    )
    cache_manager.cache_put(key, result.model_dump(mode="json"), settings.cache_ttl_satellite)
    return result


# ── Key points ──────────────────────────────────────────────


def get_key_points(*, force: bool = False) -> KeyPoints:
    """Four-bullet operations briefing generated from the gridpoint forecast."""
    event = event_config.get_event_config()
    key = _location_key("key_points", event)
    if not force:
        cached = cache_manager.cache_get(key)
        if cached is not None:
            return KeyPoints.model_validate(cached)

    if not settings.key_points_enabled:
        return KeyPoints(timestamp=_now(), error="Key points summarizer is disabled")

    forecast = get_gridpoint_forecast()
    if forecast.error or not forecast.hours:
        return KeyPoints(timestamp=_now(), error="No forecast data available for key points")

    try:
        content = ollama_client.chat(build_key_points_messages(forecast.hours, event))
    except RuntimeError as exc:
        logger.warning("Key points generation failed", extra={"error": str(exc)})
        return KeyPoints(timestamp=_now(), error=f"Unable to generate key points: {exc}")

    bullets = parse_bullets(content)
    if not bullets:
        return KeyPoints(timestamp=_now(), error="Unable to generate key points: empty response")

    result = KeyPoints(timestamp=_now(), bullets=bullets, model=ollama_client.model)
    cache_manager.cache_put(key, result.model_dump(mode="json"), settings.cache_ttl_key_points)
    return result
