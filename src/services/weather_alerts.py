"""Hazard alert rules evaluated against a normalized forecast."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from services.forecast_models import HourlyForecastPoint, Severity, WeatherAlert, WeatherSnapshot
from services.sanitize import Unit
from services.units import get_precipitation_unit, get_speed_unit, visibility_in_display_units

THUNDERSTORM_CODES = frozenset({95, 96, 99})
HEAVY_RAIN_WINDOW_HOURS = 6
HEAVY_RAIN_MIN_HOURS = 2  # must be exceeded, not merely reached


@dataclass(frozen=True, slots=True)
class _Thresholds:
    wind_moderate: float
    wind_severe: float
    heavy_rain: float
    visibility_moderate: float
    visibility_severe: float
    visibility_unit: str


METRIC_THRESHOLDS = _Thresholds(
    wind_moderate=50.0,
    wind_severe=70.0,
    heavy_rain=5.0,
    visibility_moderate=5.0,
    visibility_severe=1.0,
    visibility_unit="km",
)
IMPERIAL_THRESHOLDS = _Thresholds(
    wind_moderate=31.0,
    wind_severe=43.0,
    heavy_rain=0.2,
    visibility_moderate=3.1,
    visibility_severe=0.6,
    visibility_unit="mi",
)


def thresholds_for(unit: Unit) -> _Thresholds:
    return IMPERIAL_THRESHOLDS if unit == "imperial" else METRIC_THRESHOLDS


def _isoformat(value: datetime) -> str:
    iso = value.astimezone(timezone.utc).isoformat(timespec="seconds")
    if iso.endswith("+00:00"):
        return iso[:-6] + "Z"
    return iso


def _alert(kind: str, title: str, description: str, severity: Severity, now: datetime, hours: int) -> WeatherAlert:
    return WeatherAlert(
        kind=kind,
        title=title,
        description=description,
        severity=severity,
        start=_isoformat(now),
        end=_isoformat(now + timedelta(hours=hours)),
    )


def _high_wind(snapshot: WeatherSnapshot, unit: Unit, limits: _Thresholds, now: datetime) -> Optional[WeatherAlert]:
    peak = max(snapshot.wind_speed, snapshot.wind_gusts)
    if peak > limits.wind_severe:
        severity: Severity = "severe"
    elif peak > limits.wind_moderate:
        severity = "moderate"
    else:
        return None
    return _alert(
        "wind",
        "High Wind Warning",
        f"Wind speeds up to {round(peak)} {get_speed_unit(unit)} expected. "
        "Strong gusts may affect vehicle stability on straights.",
        severity,
        now,
        3,
    )


def _heavy_rain(
    hourly: Sequence[HourlyForecastPoint],
    unit: Unit,
    limits: _Thresholds,
    now: datetime,
) -> Optional[WeatherAlert]:
    window = hourly[:HEAVY_RAIN_WINDOW_HOURS]
    wet_hours = [hour for hour in window if hour.precipitation > limits.heavy_rain]
    if len(wet_hours) <= HEAVY_RAIN_MIN_HOURS:
        return None
    return _alert(
        "rain",
        "Heavy Rain Alert",
        f"Heavy rain over {limits.heavy_rain:g} {get_precipitation_unit(unit)}/h expected "
        f"for {len(wet_hours)} of the next {HEAVY_RAIN_WINDOW_HOURS} hours. Track conditions may be affected.",
        "severe",
        now,
        HEAVY_RAIN_WINDOW_HOURS,
    )


def _thunderstorm(snapshot: WeatherSnapshot, now: datetime) -> Optional[WeatherAlert]:
    if snapshot.weather_code not in THUNDERSTORM_CODES:
        return None
    return _alert(
        "thunderstorm",
        "Thunderstorm Warning",
        "Thunderstorms in the area. Lightning risk may lead to session delays.",
        "extreme",
        now,
        2,
    )


def _low_visibility(snapshot: WeatherSnapshot, unit: Unit, limits: _Thresholds, now: datetime) -> Optional[WeatherAlert]:
    distance = visibility_in_display_units(snapshot.visibility, unit)
    if distance < limits.visibility_severe:
        severity: Severity = "severe"
    elif distance < limits.visibility_moderate:
        severity = "moderate"
    else:
        return None
    return _alert(
        "visibility",
        "Low Visibility",
        f"Visibility reduced to {distance:.1f} {limits.visibility_unit}. Spotting and marshalling may be impaired.",
        severity,
        now,
        2,
    )


def analyze_weather(
    snapshot: WeatherSnapshot,
    hourly: Sequence[HourlyForecastPoint],
    unit: Unit,
    *,
    now: Optional[datetime] = None,
) -> List[WeatherAlert]:
    """Evaluate each hazard rule once; every rule yields at most one alert.

    The engine keeps no memory between calls, so repeated invocations report
    the same alerts again.
    """
    current_time = now or datetime.now(timezone.utc)
    limits = thresholds_for(unit)
    candidates = (
        _high_wind(snapshot, unit, limits, current_time),
        _heavy_rain(hourly, unit, limits, current_time),
        _thunderstorm(snapshot, current_time),
        _low_visibility(snapshot, unit, limits, current_time),
    )
    return [alert for alert in candidates if alert is not None]
