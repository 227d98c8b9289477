"""Helpers for the api.weather.gov point, gridpoint, observation and alert endpoints."""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Mapping, Optional, Tuple

from eventwx.config import settings
from eventwx.conversions import (
    celsius_to_fahrenheit,
    deg_to_compass,
    kmh_to_mph,
    meters_to_feet,
    meters_to_miles,
    ms_to_mph,
    pascals_to_inhg,
    pascals_to_mb,
    round1,
    round2,
    round_int,
    wind_chill_f,
)
from eventwx.data_sources import http
from eventwx.domain import Alert, CurrentWeather, Station
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="nws_client")

GEO_JSON = "application/geo+json"
SEVERE_LEVELS = {"Extreme", "Severe"}

CLOUD_COVER_NAMES = {
    "CLR": "Clear",
    "SKC": "Clear",
    "FEW": "Few",
    "SCT": "Scattered",
    "BKN": "Broken",
    "OVC": "Overcast",
    "VV": "Vert Vis",
}


def fetch_point_metadata(latitude: float, longitude: float) -> Dict[str, Any]:
    """Resolve a lat/lon to its forecast office grid and related URLs."""
    data = http.fetch_json(f"{settings.nws_base_url}/points/{latitude},{longitude}", accept=GEO_JSON)
    props = data["properties"]
    return {
        "forecast_hourly": props.get("forecastHourly"),
        "forecast": props.get("forecast"),
        "observation_stations": props.get("observationStations"),
        "grid_id": props["gridId"],
        "grid_x": props["gridX"],
        "grid_y": props["gridY"],
    }


def fetch_gridpoint(grid_id: str, grid_x: int, grid_y: int) -> Dict[str, Any]:
    """Return the `properties` object of a raw gridpoint forecast."""
    data = http.fetch_json(f"{settings.nws_base_url}/gridpoints/{grid_id}/{grid_x},{grid_y}", accept=GEO_JSON)
    return data["properties"]


def fetch_latest_observation(stations_url: str) -> Tuple[str, Dict[str, Any]]:
    """Return (station id, observation properties) for the first listed station."""
    stations = http.fetch_json(stations_url, accept=GEO_JSON)
    station_url = stations["features"][0]["id"]
    observation = http.fetch_json(f"{station_url}/observations/latest", accept=GEO_JSON)
    return station_url.rstrip("/").split("/")[-1], observation["properties"]


def fetch_active_alerts(latitude: float, longitude: float) -> List[Dict[str, Any]]:
    """Return active alert features for a point."""
    data = http.fetch_json(f"{settings.nws_base_url}/alerts/active",
                           params={"point": f"{latitude},{longitude}"}, accept=GEO_JSON)
    return data.get("features") or []


def _qv(props: Mapping, name: str) -> Optional[float]:
    """Value of a quantitative observation property, or None."""
    prop = props.get(name)
    if not isinstance(prop, Mapping):
        return None
    return prop.get("value")


def _wind_mph(props: Mapping, name: str) -> Optional[float]:
    """Observed wind in mph; NWS reports km/h, older feeds m/s."""
    prop = props.get(name)
    value = _qv(props, name)
    if value is None:
        return None
    unit = (prop or {}).get("unitCode") or ""
    if unit.endswith("m_s-1"):
        return ms_to_mph(value)
    return kmh_to_mph(value)


def format_cloud_layers(layers: Optional[List[Mapping]]) -> List[str]:
    """Describe cloud layers like "Broken @ 2,500 ft"."""
    described = []
    for layer in layers or []:
        amount = layer.get("amount") or ""
        base = layer.get("base") or {}
        base_ft = round_int(meters_to_feet(base.get("value"))) if base.get("value") else None
        name = CLOUD_COVER_NAMES.get(amount, amount)
        described.append(f"{name} @ {base_ft:,} ft" if base_ft else name)
    return described


def observation_to_current(station_id: str, props: Mapping) -> CurrentWeather:
    """Normalize an NWS latest observation into display units."""
    temp_f = round1(celsius_to_fahrenheit(_qv(props, "temperature")))
    wind_mph = round1(_wind_mph(props, "windSpeed"))
    wind_dir = round1(_qv(props, "windDirection"))
    pressure = _qv(props, "barometricPressure")
    slp = _qv(props, "seaLevelPressure")
    return CurrentWeather(
        timestamp=dt.datetime.now(dt.timezone.utc),
        source="NOAA NWS",
        observation_time=props.get("timestamp"),
        station=Station(id=station_id, name="NWS Station"),
        temperature_f=temp_f,
        feels_like_f=round1(wind_chill_f(temp_f, wind_mph)),
        dewpoint_f=round1(celsius_to_fahrenheit(_qv(props, "dewpoint"))),
        relative_humidity=round1(_qv(props, "relativeHumidity")),
        wind_speed_mph=wind_mph,
        wind_direction_deg=wind_dir,
        wind_cardinal=deg_to_compass(wind_dir),
        wind_gust_mph=round1(_wind_mph(props, "windGust")),
        visibility_mi=round1(meters_to_miles(_qv(props, "visibility"))),
        sea_level_pressure_mb=round1(pascals_to_mb(slp)),
        altimeter_inhg=round2(pascals_to_inhg(pressure if pressure is not None else slp)),
        precip_1hr_in=None,
        clouds=format_cloud_layers(props.get("cloudLayers")),
    )


def feature_to_alert(feature: Mapping) -> Alert:
    """Reduce an alert feature to the fields the dashboard shows."""
    props = feature.get("properties") or {}
    severity = props.get("severity")
    return Alert(
        event=props.get("event"),
        headline=props.get("headline"),
        severity=severity,
        effective=props.get("effective"),
        expires=props.get("expires"),
        severe=severity in SEVERE_LEVELS,
    )
