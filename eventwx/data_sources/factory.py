"""Factory helpers for choosing observation sources at startup."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from eventwx import config
from eventwx.data_sources import nws_client, synoptic_client
from eventwx.data_sources.base import CallableObservationSource, ObservationSource
from eventwx.domain import CurrentWeather, EventConfig
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")

PointMetaLookup = Callable[[EventConfig], Dict[str, Any]]


def _synoptic_fetcher(token: str) -> Callable[[EventConfig], CurrentWeather]:
    def fetch(event: EventConfig) -> CurrentWeather:
        station = synoptic_client.fetch_nearest_station(event.latitude, event.longitude, token=token)
        return synoptic_client.station_to_current(station)
    return fetch


def _nws_fetcher(point_meta: PointMetaLookup) -> Callable[[EventConfig], CurrentWeather]:
    def fetch(event: EventConfig) -> CurrentWeather:
        stations_url = point_meta(event)["observation_stations"]
        if not stations_url:
            raise ValueError("NWS point has no observation stations")
        station_id, props = nws_client.fetch_latest_observation(stations_url)
        return nws_client.observation_to_current(station_id, props)
    return fetch


def build_observation_sources(
    point_meta: PointMetaLookup,
    settings: config.Settings | None = None,
) -> List[ObservationSource]:
    """Instantiate the configured observation sources in priority order."""
    settings = settings or config.settings
    sources: List[ObservationSource] = []

    for name in settings.observation_source_names():
        if name == "synoptic":
            if not settings.synoptic_token:
                logger.info("Skipping Synoptic source (no token configured)")
                continue
            sources.append(CallableObservationSource(name="synoptic", fetch=_synoptic_fetcher(settings.synoptic_token)))
        elif name == "nws":
            sources.append(CallableObservationSource(name="nws", fetch=_nws_fetcher(point_meta)))
        else:
            raise ValueError(f"Unknown observation source '{name}'")

    logger.info("Observation sources configured", extra={"sources": [s.name for s in sources]})
    return sources
