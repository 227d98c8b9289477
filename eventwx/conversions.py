"""Unit conversion and rounding helpers for observation and forecast values.

All helpers accept None and return None so missing readings stay missing.
"""

from __future__ import annotations

import math
from typing import Optional

COMPASS_POINTS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


def round_half_up(value: Optional[float], digits: int = 0) -> Optional[float]:
    """Round halves away from the floor (2.5 -> 3, -2.5 -> -2), unlike round()."""
    if value is None:
        return None
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def round1(value: Optional[float]) -> Optional[float]:
    return round_half_up(value, 1)


def round2(value: Optional[float]) -> Optional[float]:
    return round_half_up(value, 2)


def round_int(value: Optional[float]) -> Optional[int]:
    rounded = round_half_up(value, 0)
    return None if rounded is None else int(rounded)


def celsius_to_fahrenheit(celsius: Optional[float]) -> Optional[float]:
    if celsius is None:
        return None
    return celsius * 9 / 5 + 32


def kmh_to_mph(kmh: Optional[float]) -> Optional[float]:
    if kmh is None:
        return None
    return kmh * 0.621371


def ms_to_mph(ms: Optional[float]) -> Optional[float]:
    if ms is None:
        return None
    return ms * 2.237


def mm_to_inches(mm: Optional[float]) -> Optional[float]:
    if mm is None:
        return None
    return mm / 25.4


def meters_to_miles(meters: Optional[float]) -> Optional[float]:
    if meters is None:
        return None
    return meters / 1609.34


def meters_to_feet(meters: Optional[float]) -> Optional[float]:
    if meters is None:
        return None
    return meters * 3.28084


def pascals_to_inhg(pascals: Optional[float]) -> Optional[float]:
    if pascals is None:
        return None
    return pascals / 3386.39


def pascals_to_mb(pascals: Optional[float]) -> Optional[float]:
    if pascals is None:
        return None
    return pascals / 100


def deg_to_compass(degrees: Optional[float]) -> Optional[str]:
    """Map a bearing to one of 16 compass labels; None when there is no bearing."""
    if degrees is None:
        return None
    return COMPASS_POINTS[math.floor(degrees / 22.5 + 0.5) % 16]


def wind_chill_f(temp_f: Optional[float], wind_mph: Optional[float]) -> Optional[float]:
    """
    NWS wind chill, applied only below 50°F with wind over 3 mph.

    Outside that range the air temperature itself is returned.
    """
    if temp_f is None:
        return None
    if wind_mph is None or wind_mph <= 3 or temp_f >= 50:
        return temp_f
    v = wind_mph ** 0.16
    return 35.74 + 0.6215 * temp_f - 35.75 * v + 0.4275 * temp_f * v

