from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

Severity = Literal["minor", "moderate", "severe", "extreme"]

T = TypeVar("T")


def _from_payload(cls: Type[T], payload: Dict[str, Any]) -> T:
    # Missing keys raise KeyError, which cache readers treat as a corrupt record.
    return cls(**{field.name: payload[field.name] for field in fields(cls)})  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class WeatherSnapshot:
    """Current conditions, already bounded and expressed in the requested unit system."""

    time: str
    temperature: float
    apparent_temperature: float
    wind_speed: float
    wind_direction: float
    wind_gusts: float
    humidity: float
    weather_code: int
    pressure: float
    visibility: float
    uv_index: float
    dew_point: float
    cloud_cover: float
    precipitation: float
    is_day: bool

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "WeatherSnapshot":
        return _from_payload(cls, payload)


@dataclass(frozen=True, slots=True)
class HourlyForecastPoint:
    time: str
    temperature: float
    wind_speed: float
    wind_direction: float
    wind_gusts: float
    humidity: float
    precipitation: float
    precipitation_probability: float
    weather_code: int
    pressure: float
    visibility: float
    uv_index: float
    dew_point: float
    cloud_cover: float

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "HourlyForecastPoint":
        return _from_payload(cls, payload)


@dataclass(frozen=True, slots=True)
class DailyForecastPoint:
    date: str
    weekday: str
    temperature_min: float
    temperature_max: float
    weather_code: int
    precipitation_probability: float
    precipitation_sum: float
    wind_speed: float
    wind_direction: float
    wind_gusts: float
    uv_index_max: float
    sunrise: str
    sunset: str

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DailyForecastPoint":
        return _from_payload(cls, payload)


@dataclass(frozen=True, slots=True)
class WeatherAlert:
    kind: str
    title: str
    description: str
    severity: Severity
    start: str
    end: str

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "WeatherAlert":
        return _from_payload(cls, payload)


@dataclass(frozen=True, slots=True)
class ForecastBundle:
    snapshot: WeatherSnapshot
    daily: List[DailyForecastPoint]
    hourly: List[HourlyForecastPoint]


@dataclass(frozen=True, slots=True)
class WeatherPayload:
    """What both cache tiers store for one fetch; replaced wholesale on refresh."""

    snapshot: WeatherSnapshot
    daily: List[DailyForecastPoint]
    hourly: List[HourlyForecastPoint]
    alerts: List[WeatherAlert]
    timestamp: float
    latitude: float
    longitude: float
    unit: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "current": self.snapshot.to_payload(),
            "daily": [day.to_payload() for day in self.daily],
            "hourly": [hour.to_payload() for hour in self.hourly],
            "alerts": [alert.to_payload() for alert in self.alerts],
            "timestamp": self.timestamp,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "unit": self.unit,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "WeatherPayload":
        return cls(
            snapshot=WeatherSnapshot.from_payload(payload["current"]),
            daily=[DailyForecastPoint.from_payload(day) for day in payload["daily"]],
            hourly=[HourlyForecastPoint.from_payload(hour) for hour in payload["hourly"]],
            alerts=[WeatherAlert.from_payload(alert) for alert in payload["alerts"]],
            timestamp=float(payload["timestamp"]),
            latitude=float(payload["latitude"]),
            longitude=float(payload["longitude"]),
            unit=str(payload["unit"]),
        )


@dataclass(frozen=True, slots=True)
class WeatherResult:
    snapshot: Optional[WeatherSnapshot]
    daily: List[DailyForecastPoint]
    hourly: List[HourlyForecastPoint]
    alerts: List[WeatherAlert]
    is_offline: bool = False
    is_cached: bool = False
    is_stale: bool = False
    error: Optional[str] = None
    last_updated: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "current": self.snapshot.to_payload() if self.snapshot is not None else None,
            "daily": [day.to_payload() for day in self.daily],
            "hourly": [hour.to_payload() for hour in self.hourly],
            "alerts": [alert.to_payload() for alert in self.alerts],
            "is_offline": self.is_offline,
            "is_cached": self.is_cached,
            "is_stale": self.is_stale,
            "error": self.error,
            "last_updated": self.last_updated,
        }
