from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.forecast_models import DailyForecastPoint, ForecastBundle, HourlyForecastPoint, WeatherSnapshot
from services.sanitize import (
    Unit,
    normalize_direction,
    sanitize,
    sanitize_cloud_cover,
    sanitize_humidity,
    sanitize_precipitation,
    sanitize_probability,
    sanitize_pressure,
    sanitize_temperature,
    sanitize_uv_index,
    sanitize_visibility,
    sanitize_weather_code,
    sanitize_wind_speed,
)
from services.units import convert_precipitation

HOURLY_POINTS = 72
DAILY_PRECIPITATION_MAX_MM = 2_000.0
WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

CURRENT_FIELDS = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "precipitation",
    "weather_code",
    "cloud_cover",
    "surface_pressure",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "visibility",
    "uv_index",
    "dew_point_2m",
    "is_day",
]
HOURLY_FIELDS = [
    "temperature_2m",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "relative_humidity_2m",
    "precipitation",
    "precipitation_probability",
    "weather_code",
    "surface_pressure",
    "visibility",
    "uv_index",
    "dew_point_2m",
    "cloud_cover",
]
DAILY_FIELDS = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
    "precipitation_sum",
    "wind_speed_10m_max",
    "wind_direction_10m_dominant",
    "wind_gusts_10m_max",
    "uv_index_max",
    "sunrise",
    "sunset",
]


class RawForecast(BaseModel):
    """Tolerant view of an Open-Meteo response.

    Sections that are missing or of the wrong shape become empty; individual
    values are left untouched for the sanitizers to deal with.
    """

    model_config = ConfigDict(extra="ignore")

    current: Dict[str, Any] = Field(default_factory=dict)
    hourly: Dict[str, List[Any]] = Field(default_factory=dict)
    daily: Dict[str, List[Any]] = Field(default_factory=dict)

    @field_validator("current", mode="before")
    @classmethod
    def _mapping_or_empty(cls, v: Any) -> Dict[str, Any]:
        if not isinstance(v, dict):
            return {}
        return {str(key): value for key, value in v.items()}

    @field_validator("hourly", "daily", mode="before")
    @classmethod
    def _series_or_empty(cls, v: Any) -> Dict[str, List[Any]]:
        if not isinstance(v, dict):
            return {}
        return {str(key): list(value) if isinstance(value, (list, tuple)) else [] for key, value in v.items()}

    def series_value(self, section: str, name: str, index: int) -> Any:
        series = getattr(self, section).get(name, [])
        return series[index] if 0 <= index < len(series) else None

    def series_length(self, section: str) -> int:
        return len(getattr(self, section).get("time", []))


def parse_raw_forecast(raw: Any) -> RawForecast:
    if not isinstance(raw, dict):
        return RawForecast()
    return RawForecast.model_validate(raw)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _weekday(value: Any) -> str:
    try:
        parsed = date.fromisoformat(_text(value)[:10])
    except ValueError:
        return ""
    return WEEKDAY_LABELS[parsed.weekday()]


def _local_clock(value: Any) -> str:
    try:
        parsed = datetime.fromisoformat(_text(value))
    except ValueError:
        return ""
    return parsed.strftime("%H:%M")


def current_hour_index(times: Sequence[Any], current_time: str) -> int:
    """Index of the first hourly slot at or after the hour of ``current_time``.

    Open-Meteo hourly series start at local midnight, so slot 0 is usually in
    the past. Returns 0 when the current time is unknown and ``len(times)``
    when every slot is already over.
    """
    hour = current_time[:13]
    if not hour:
        return 0
    for idx, value in enumerate(times):
        if _text(value)[:13] >= hour:
            return idx
    return len(times)


def upcoming_hours(hourly: Sequence[HourlyForecastPoint], current_time: str) -> List[HourlyForecastPoint]:
    """The hourly series from the current hour onwards; the alert window reads from here."""
    return list(hourly[current_hour_index([point.time for point in hourly], current_time):])


def _build_snapshot(raw: RawForecast, unit: Unit) -> WeatherSnapshot:
    current = raw.current
    now_idx = current_hour_index(raw.hourly.get("time", []), _text(current.get("time")))

    def pick(name: str) -> Any:
        # Fields the current block omits are taken from the matching forecast hour.
        value = current.get(name)
        if value is None:
            return raw.series_value("hourly", name, now_idx)
        return value

    temperature = sanitize_temperature(current.get("temperature_2m"), unit)
    apparent = current.get("apparent_temperature")
    return WeatherSnapshot(
        time=_text(current.get("time")),
        temperature=temperature,
        apparent_temperature=sanitize_temperature(apparent, unit) if apparent is not None else temperature,
        wind_speed=sanitize_wind_speed(current.get("wind_speed_10m"), unit),
        wind_direction=normalize_direction(current.get("wind_direction_10m")),
        wind_gusts=sanitize_wind_speed(pick("wind_gusts_10m"), unit),
        humidity=sanitize_humidity(current.get("relative_humidity_2m")),
        weather_code=sanitize_weather_code(current.get("weather_code")),
        pressure=sanitize_pressure(pick("surface_pressure")),
        visibility=sanitize_visibility(pick("visibility")),
        uv_index=sanitize_uv_index(pick("uv_index")),
        dew_point=sanitize_temperature(pick("dew_point_2m"), unit),
        cloud_cover=sanitize_cloud_cover(pick("cloud_cover")),
        precipitation=convert_precipitation(sanitize_precipitation(current.get("precipitation")), unit),
        is_day=sanitize(current.get("is_day"), 1.0, 0.0, 1.0) >= 1.0,
    )


def _build_hourly(raw: RawForecast, unit: Unit, hours: int) -> List[HourlyForecastPoint]:
    points: List[HourlyForecastPoint] = []
    for idx in range(min(raw.series_length("hourly"), hours)):
        def value(name: str) -> Any:
            return raw.series_value("hourly", name, idx)

        points.append(
            HourlyForecastPoint(
                time=_text(value("time")),
                temperature=sanitize_temperature(value("temperature_2m"), unit),
                wind_speed=sanitize_wind_speed(value("wind_speed_10m"), unit),
                wind_direction=normalize_direction(value("wind_direction_10m")),
                wind_gusts=sanitize_wind_speed(value("wind_gusts_10m"), unit),
                humidity=sanitize_humidity(value("relative_humidity_2m")),
                precipitation=convert_precipitation(sanitize_precipitation(value("precipitation")), unit),
                precipitation_probability=sanitize_probability(value("precipitation_probability")),
                weather_code=sanitize_weather_code(value("weather_code")),
                pressure=sanitize_pressure(value("surface_pressure")),
                visibility=sanitize_visibility(value("visibility")),
                uv_index=sanitize_uv_index(value("uv_index")),
                dew_point=sanitize_temperature(value("dew_point_2m"), unit),
                cloud_cover=sanitize_cloud_cover(value("cloud_cover")),
            )
        )
    return points


def _build_daily(raw: RawForecast, unit: Unit) -> List[DailyForecastPoint]:
    days: List[DailyForecastPoint] = []
    for idx in range(raw.series_length("daily")):
        def value(name: str) -> Any:
            return raw.series_value("daily", name, idx)

        day = _text(value("time"))
        precipitation_sum = sanitize(value("precipitation_sum"), 0.0, 0.0, DAILY_PRECIPITATION_MAX_MM)
        days.append(
            DailyForecastPoint(
                date=day,
                weekday=_weekday(day),
                temperature_min=sanitize_temperature(value("temperature_2m_min"), unit),
                temperature_max=sanitize_temperature(value("temperature_2m_max"), unit),
                weather_code=sanitize_weather_code(value("weather_code")),
                precipitation_probability=sanitize_probability(value("precipitation_probability_max")),
                precipitation_sum=convert_precipitation(precipitation_sum, unit),
                wind_speed=sanitize_wind_speed(value("wind_speed_10m_max"), unit),
                wind_direction=normalize_direction(value("wind_direction_10m_dominant")),
                wind_gusts=sanitize_wind_speed(value("wind_gusts_10m_max"), unit),
                uv_index_max=sanitize_uv_index(value("uv_index_max")),
                sunrise=_local_clock(value("sunrise")),
                sunset=_local_clock(value("sunset")),
            )
        )
    return days


def build_forecast(raw: Any, unit: Unit, *, hours: Optional[int] = None) -> ForecastBundle:
    """Normalize a raw provider payload into a snapshot plus hourly and daily series.

    Never raises on bad provider data: absent or garbled values degrade to the
    per-quantity fallbacks. Pure function of ``raw`` and ``unit``.
    """
    parsed = parse_raw_forecast(raw)
    limit = HOURLY_POINTS if hours is None else max(hours, 0)
    return ForecastBundle(
        snapshot=_build_snapshot(parsed, unit),
        daily=_build_daily(parsed, unit),
        hourly=_build_hourly(parsed, unit, limit),
    )
