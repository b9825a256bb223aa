"""Bounded coercion of raw provider values into physically plausible numbers."""

from __future__ import annotations

import math
from typing import Any, Literal, Optional

Unit = Literal["metric", "imperial"]

TEMPERATURE_MIN_C = -60.0
TEMPERATURE_MAX_C = 60.0
TEMPERATURE_MIN_F = -76.0
TEMPERATURE_MAX_F = 140.0
WIND_SPEED_MAX_KMH = 300.0
WIND_SPEED_MAX_MPH = 186.0
PRECIPITATION_MAX_MM = 500.0
PRESSURE_MIN_HPA = 870.0
PRESSURE_MAX_HPA = 1085.0
PRESSURE_FALLBACK_HPA = 1013.0
VISIBILITY_MAX_M = 50_000.0
VISIBILITY_FALLBACK_M = 10_000.0
UV_INDEX_MAX = 15.0
HUMIDITY_FALLBACK_PCT = 50.0


def _as_finite(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            numeric = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(numeric):
        return None
    return numeric


def sanitize(
    value: Any,
    fallback: float,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> float:
    """Return ``value`` as a finite float clamped to ``[minimum, maximum]``.

    Anything that is not a finite number (``None``, ``NaN``, infinities,
    booleans, unparsable strings, containers) is replaced by ``fallback``.
    The fallback itself is clamped too, so the result always honours the
    bounds.
    """
    numeric = _as_finite(value)
    if numeric is None:
        numeric = float(fallback)
    if minimum is not None and numeric < minimum:
        numeric = float(minimum)
    if maximum is not None and numeric > maximum:
        numeric = float(maximum)
    return numeric


def sanitize_temperature(value: Any, unit: Unit = "metric") -> float:
    if unit == "imperial":
        return sanitize(value, 0.0, TEMPERATURE_MIN_F, TEMPERATURE_MAX_F)
    return sanitize(value, 0.0, TEMPERATURE_MIN_C, TEMPERATURE_MAX_C)


def sanitize_wind_speed(value: Any, unit: Unit = "metric") -> float:
    maximum = WIND_SPEED_MAX_MPH if unit == "imperial" else WIND_SPEED_MAX_KMH
    return sanitize(value, 0.0, 0.0, maximum)


def sanitize_humidity(value: Any) -> float:
    return sanitize(value, HUMIDITY_FALLBACK_PCT, 0.0, 100.0)


def sanitize_precipitation(value: Any) -> float:
    """Hourly precipitation in millimetres, before any unit conversion."""
    return sanitize(value, 0.0, 0.0, PRECIPITATION_MAX_MM)


def sanitize_pressure(value: Any) -> float:
    return sanitize(value, PRESSURE_FALLBACK_HPA, PRESSURE_MIN_HPA, PRESSURE_MAX_HPA)


def sanitize_visibility(value: Any) -> float:
    return sanitize(value, VISIBILITY_FALLBACK_M, 0.0, VISIBILITY_MAX_M)


def sanitize_uv_index(value: Any) -> float:
    return sanitize(value, 0.0, 0.0, UV_INDEX_MAX)


def sanitize_percentage(value: Any) -> float:
    return sanitize(value, 0.0, 0.0, 100.0)


def sanitize_cloud_cover(value: Any) -> float:
    return sanitize_percentage(value)


def sanitize_probability(value: Any) -> float:
    """Precipitation probability in percent."""
    return sanitize_percentage(value)


def normalize_direction(value: Any) -> float:
    """Wrap a compass direction into ``[0, 360)``; direction is circular so it never clamps."""
    numeric = _as_finite(value)
    if numeric is None:
        return 0.0
    wrapped = ((numeric % 360.0) + 360.0) % 360.0
    # Tiny negative inputs can round up to exactly 360.0 in floating point.
    if wrapped >= 360.0:
        wrapped = 0.0
    return wrapped


def sanitize_weather_code(value: Any) -> int:
    """WMO weather interpretation code; unknown input maps to 0 (clear sky)."""
    return int(sanitize(value, 0.0, 0.0, 99.0))
