"""Background refresh of the cached dashboard panels."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from eventwx import config, weather_service
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="refresh")


@dataclass(frozen=True)
class RefreshJob:
    """A service call repeated on a fixed interval."""
    name: str
    interval_seconds: float
    run: Callable[[], object]


def default_jobs(settings: config.Settings | None = None) -> List[RefreshJob]:
    """The panels that are kept warm, with their configured intervals."""
    settings = settings or config.settings
    return [
        RefreshJob("weather", settings.refresh_weather_seconds,
                   lambda: weather_service.get_current_weather(force=True)),
        RefreshJob("forecast", settings.refresh_forecast_seconds,
                   lambda: weather_service.get_gridpoint_forecast(force=True)),
        RefreshJob("alerts", settings.refresh_alerts_seconds,
                   lambda: weather_service.get_alerts(force=True)),
        RefreshJob("radar", settings.refresh_radar_seconds,
                   lambda: weather_service.get_radar_times(force=True)),
        RefreshJob("satellite", settings.refresh_satellite_seconds,
                   lambda: weather_service.get_satellite_times(force=True)),
    ]


def refresh_loop(job: RefreshJob, stop_event: threading.Event) -> None:
    """Run a job until stopped; a failing run is logged and retried next interval."""
    while not stop_event.is_set():
        try:
            result = job.run()
            error = getattr(result, "error", None)
            if error:
                logger.warning("Refresh returned an error", extra={"job": job.name, "error": error})
            else:
                logger.debug("Refreshed", extra={"job": job.name})
        except Exception:
            logger.exception("Refresh failed", extra={"job": job.name})

        stop_event.wait(job.interval_seconds)


def start_refresh_tasks(jobs: Optional[List[RefreshJob]] = None) -> Tuple[threading.Event, List[threading.Thread]]:
    """Start one daemon thread per job. Returns (stop_event, threads)."""
    stop_event = threading.Event()
    threads = []
    for job in jobs if jobs is not None else default_jobs():
        thread = threading.Thread(target=refresh_loop, args=(job, stop_event),
                                  name=f"refresh-{job.name}", daemon=True)
        thread.start()
        threads.append(thread)
    logger.info("Started refresh tasks", extra={"jobs": [t.name for t in threads]})
    return stop_event, threads
