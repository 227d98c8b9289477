"""HTTP API for the event weather dashboard."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel

from eventwx import cache_manager, chart_renderer, event_config, weather_service
from eventwx.config import settings
from eventwx.domain import (
    AlertsSummary,
    CurrentWeather,
    EventConfig,
    GridpointForecast,
    KeyPoints,
    RadarTimes,
    SatelliteTimes,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="api")

router = APIRouter()

MAX_CHART_DIMENSION = 4000


class SaveConfigResponse(BaseModel):
    """Result of persisting the event configuration."""
    success: bool
    message: str


class SatelliteChannel(BaseModel):
    """Selectable satellite product."""
    id: str
    name: str


@router.get("/config", response_model=EventConfig, response_model_by_alias=True)
def get_config():
    """Return the event being watched."""
    return event_config.get_event_config()


@router.put("/config", response_model=SaveConfigResponse)
def put_config(new_config: EventConfig):
    """Persist a new event configuration and drop data cached for the old one."""
    try:
        event_config.save_event_config(new_config)
    except OSError as exc:
        logger.error("Failed to save event config", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail="Failed to save configuration")
    cache_manager.clear_cache()
    return SaveConfigResponse(success=True, message="Configuration saved")


@router.get("/weather/current", response_model=CurrentWeather)
def current_weather():
    return weather_service.get_current_weather()


@router.get("/weather/forecast/gridpoint", response_model=GridpointForecast)
def gridpoint_forecast():
    return weather_service.get_gridpoint_forecast()


@router.get("/weather/alerts", response_model=AlertsSummary)
def alerts():
    return weather_service.get_alerts()


@router.get("/radar/times", response_model=RadarTimes)
def radar_times():
    return weather_service.get_radar_times()


@router.get("/satellite/channels", response_model=list[SatelliteChannel])
def satellite_channels():
    """List the satellite products the dashboard can loop."""
    return [SatelliteChannel(id=k, name=v) for k, v in weather_service.SATELLITE_CHANNELS.items()]


@router.get("/satellite/times", response_model=SatelliteTimes)
def satellite_times(channel: Optional[str] = None):
    """Recent frame times for a satellite channel (default: visible)."""
    if channel is not None and channel not in weather_service.SATELLITE_CHANNELS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail=f"Unknown satellite channel: {channel}")
    return weather_service.get_satellite_times(channel)


@router.get("/keypoints", response_model=KeyPoints)
def key_points():
    return weather_service.get_key_points()


@router.get("/charts/timeline", response_class=HTMLResponse)
def timeline_chart(
    width: int = Query(default=settings.chart_width, ge=0, le=MAX_CHART_DIMENSION),
    height: int = Query(default=settings.chart_height, ge=0, le=MAX_CHART_DIMENSION),
):
    """Server-rendered temperature, rain chance and cloud cover rows."""
    forecast = weather_service.get_gridpoint_forecast()
    return HTMLResponse(chart_renderer.render_timeline(forecast, event_config.get_event_config(), width, height))


@router.get("/charts/{field}.svg")
def field_chart(
    field: str,
    width: int = Query(default=settings.chart_width, ge=0, le=MAX_CHART_DIMENSION),
    height: int = Query(default=settings.chart_height, ge=0, le=MAX_CHART_DIMENSION),
):
    """One forecast field as a standalone SVG chart."""
    if field not in chart_renderer.FIELD_CHARTS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown chart field: {field}")
    forecast = weather_service.get_gridpoint_forecast()
    body = chart_renderer.render_field_chart(forecast, field, event_config.get_event_config(), width, height)
    if body.startswith("<svg"):
        return Response(content=body, media_type="image/svg+xml")
    return HTMLResponse(body)
