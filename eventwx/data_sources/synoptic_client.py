"""Synoptic Data nearest-station observations."""
from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, Mapping, Optional

from eventwx.config import settings
from eventwx.conversions import (
    celsius_to_fahrenheit,
    deg_to_compass,
    mm_to_inches,
    ms_to_mph,
    pascals_to_inhg,
    round1,
    round2,
    wind_chill_f,
)
from eventwx.data_sources import http
from eventwx.data_sources.nws_client import CLOUD_COVER_NAMES
from eventwx.domain import CurrentWeather, Station
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="synoptic_client")

_CLOUD_RE = re.compile(r"(CLR|SKC|FEW|SCT|BKN|OVC|VV)(\d{3})?", re.IGNORECASE)

SYNOPTIC_VARS = ",".join([
    "air_temp", "dew_point_temperature", "relative_humidity", "wind_speed",
    "wind_direction", "wind_gust", "visibility", "cloud_layer_1_code",
    "cloud_layer_2_code", "cloud_layer_3_code", "precip_accum_one_hour",
    "sea_level_pressure", "altimeter",
])


def fetch_nearest_station(latitude: float, longitude: float, *, token: str) -> Dict[str, Any]:
    """Return the nearest station (with its OBSERVATIONS) reporting recently."""
    data = http.fetch_json(
        f"{settings.synoptic_base_url}/stations/nearesttime",
        params={
            "token": token,
            "radius": f"{latitude},{longitude},{settings.synoptic_radius_miles}",
            "limit": 1,
            "within": settings.synoptic_within_minutes,
            "vars": SYNOPTIC_VARS,
            "obtimezone": "UTC",
            "output": "json",
        },
    )
    stations = data.get("STATION") or []
    if not stations:
        raise ValueError("No stations found near location")
    return stations[0]


def parse_cloud_layer(raw: Any) -> Optional[str]:
    """
    Describe a METAR-style layer code.

    "BKN025" -> "Broken @ 2,500 ft", "CLR" -> "Clear". Unrecognized codes are
    returned as-is; empty values give None.
    """
    if raw is None or raw == "":
        return None
    text = str(raw)
    match = _CLOUD_RE.search(text)
    if not match:
        return text
    cover = match.group(1).upper()
    name = CLOUD_COVER_NAMES.get(cover, cover)
    if match.group(2):
        height = int(match.group(2)) * 100
        if height:
            return f"{name} @ {height:,} ft"
    return name


def _first(obs: Mapping, *names: str, attr: str = "value") -> Any:
    for name in names:
        entry = obs.get(name)
        if isinstance(entry, Mapping) and entry.get(attr) is not None:
            return entry[attr]
    return None


def station_to_current(station: Mapping) -> CurrentWeather:
    """Normalize a Synoptic station record into display units."""
    obs = station.get("OBSERVATIONS") or {}

    temp_f = round1(celsius_to_fahrenheit(_first(obs, "air_temp_value_1", "air_temp_set_1")))
    wind_mph = round1(ms_to_mph(_first(obs, "wind_speed_value_1", "wind_speed_set_1")))
    wind_dir = round1(_first(obs, "wind_direction_value_1", "wind_direction_set_1"))
    clouds = [
        parse_cloud_layer(_first(obs, f"cloud_layer_{i}_code_value_1", f"cloud_layer_{i}_code_set_1"))
        for i in (1, 2, 3)
    ]
    distance = station.get("DISTANCE")

    return CurrentWeather(
        timestamp=dt.datetime.now(dt.timezone.utc),
        source="Synoptic Data API",
        observation_time=_first(obs, "air_temp_value_1", "air_temp_set_1", attr="date_time"),
        station=Station(
            id=str(station.get("STID")),
            name=station.get("NAME"),
            latitude=_to_float(station.get("LATITUDE")),
            longitude=_to_float(station.get("LONGITUDE")),
            distance_mi=_to_float(distance),
        ),
        temperature_f=temp_f,
        feels_like_f=round1(wind_chill_f(temp_f, wind_mph)),
        dewpoint_f=round1(celsius_to_fahrenheit(
            _first(obs, "dew_point_temperature_value_1d", "dew_point_temperature_set_1d"))),
        relative_humidity=round1(_first(obs, "relative_humidity_value_1", "relative_humidity_set_1")),
        wind_speed_mph=wind_mph,
        wind_direction_deg=wind_dir,
        wind_cardinal=deg_to_compass(wind_dir),
        wind_gust_mph=round1(ms_to_mph(_first(obs, "wind_gust_value_1", "wind_gust_set_1"))),
        visibility_mi=round1(_first(obs, "visibility_value_1", "visibility_set_1")),
        sea_level_pressure_mb=round1(_first(obs, "sea_level_pressure_value_1d", "sea_level_pressure_set_1d")),
        altimeter_inhg=round2(pascals_to_inhg(_first(obs, "altimeter_value_1", "altimeter_set_1"))),
        precip_1hr_in=round2(mm_to_inches(
            _first(obs, "precip_accum_one_hour_value_1", "precip_accum_one_hour_set_1"))),
        clouds=[c for c in clouds if c is not None],
    )


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)
