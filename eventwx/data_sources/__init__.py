"""Upstream clients and pluggable observation sources."""

from .base import CallableObservationSource, ObservationSource
from .factory import build_observation_sources

__all__ = [
    "build_observation_sources",
    "CallableObservationSource",
    "ObservationSource",
]
