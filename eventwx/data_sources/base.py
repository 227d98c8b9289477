"""Interfaces and helpers for current-observation sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from eventwx.domain import CurrentWeather, EventConfig


class ObservationSource(Protocol):
    """Anything that can report the latest surface observation near the venue."""

    name: str

    def fetch_current(self, event: EventConfig) -> CurrentWeather:
        """Return the latest observation; raise on failure so the next source is tried."""
        ...


@dataclass
class CallableObservationSource(ObservationSource):
    """Wrap a callable so different upstreams can be swapped in."""

    name: str
    fetch: Callable[[EventConfig], CurrentWeather]

    def fetch_current(self, event: EventConfig) -> CurrentWeather:
        """Delegate to the configured callable."""
        return self.fetch(event)
