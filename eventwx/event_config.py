"""Load and persist the watched event's configuration."""
from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from eventwx.cache.disk import write_json_atomic
from eventwx.config import settings
from eventwx.domain import EventConfig
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="event_config")

_lock = threading.Lock()
_current: Optional[EventConfig] = None


def _config_path(path: str | Path | None = None) -> Path:
    return Path(path or settings.event_config_path)


def load_event_config(path: str | Path | None = None) -> EventConfig:
    """
    Read the event config from JSON.

    A missing or invalid file falls back to the built-in defaults so the
    dashboard still starts.
    """
    config_path = _config_path(path)
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            return EventConfig.model_validate(json.load(handle))
    except FileNotFoundError:
        logger.warning("Event config not found; using defaults", extra={"path": str(config_path)})
    except (ValueError, ValidationError) as exc:
        logger.warning("Event config invalid; using defaults", extra={"path": str(config_path), "error": str(exc)})
    return EventConfig()


def save_event_config(event: EventConfig, path: str | Path | None = None) -> EventConfig:
    """Atomically write the config and make it current. OSErrors propagate."""
    global _current
    config_path = _config_path(path)
    write_json_atomic(config_path, event.model_dump(mode="json", by_alias=True))
    with _lock:
        _current = event
    logger.info("Saved event config", extra={"path": str(config_path), "event": event.name})
    return event


def get_event_config() -> EventConfig:
    """Return the current config, loading it on first use."""
    global _current
    with _lock:
        if _current is None:
            _current = load_event_config()
        return _current


def set_event_config_for_tests(event: Optional[EventConfig]) -> None:
    """Replace the in-process config without touching disk; None forces a reload."""
    global _current
    with _lock:
        _current = event
