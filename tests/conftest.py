import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

import httpx  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from config import settings  # noqa: E402
from main import create_app  # noqa: E402
from services.alerts import alert_dispatcher  # noqa: E402
from services.weather import WeatherService, create_weather_service  # noqa: E402

FORECAST_START = datetime(2026, 6, 7, 0, 0)
CURRENT_TIME = "2026-06-07T14:00"
CURRENT_HOUR = 14


class FakeClock:
    def __init__(self, start: float = 1_780_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_raw_forecast(
    *,
    temperature: Any = 21.5,
    wind_speed: Any = 12.0,
    wind_direction: Any = 200.0,
    wind_gusts: Any = 20.0,
    weather_code: Any = 1,
    visibility: Any = 24_000.0,
    precipitation: Optional[List[Any]] = None,
    hours: int = 24,
    days: int = 7,
) -> Dict[str, Any]:
    """Open-Meteo shaped response with calm, dry defaults.

    Hourly columns start at local midnight like the real API. ``precipitation``
    is laid out from the current hour onwards; ``visibility`` may be a scalar
    or a full per-hour list.
    """
    rain = list(precipitation or [])
    times = [(FORECAST_START + timedelta(hours=idx)).isoformat(timespec="minutes") for idx in range(hours)]
    dates = [(FORECAST_START + timedelta(days=idx)).date().isoformat() for idx in range(days)]
    return {
        "latitude": 45.62,
        "longitude": 9.28,
        "current": {
            "time": CURRENT_TIME,
            "temperature_2m": temperature,
            "apparent_temperature": 20.0,
            "relative_humidity_2m": 60,
            "precipitation": 0.0,
            "weather_code": weather_code,
            "cloud_cover": 30,
            "surface_pressure": 1012.4,
            "wind_speed_10m": wind_speed,
            "wind_direction_10m": wind_direction,
            "wind_gusts_10m": wind_gusts,
            "is_day": 1,
        },
        "hourly": {
            "time": times,
            "temperature_2m": [18.0 + idx % 6 for idx in range(hours)],
            "wind_speed_10m": [10.0] * hours,
            "wind_direction_10m": [190.0] * hours,
            "wind_gusts_10m": [18.0] * hours,
            "relative_humidity_2m": [65] * hours,
            "precipitation": ([0.0] * CURRENT_HOUR + rain + [0.0] * hours)[:hours],
            "precipitation_probability": [10] * hours,
            "weather_code": [1] * hours,
            "surface_pressure": [1011.0] * hours,
            "visibility": list(visibility) if isinstance(visibility, list) else [visibility] * hours,
            "uv_index": [4.5] * hours,
            "dew_point_2m": [11.0] * hours,
            "cloud_cover": [25] * hours,
        },
        "daily": {
            "time": dates,
            "weather_code": [3] * days,
            "temperature_2m_max": [26.0] * days,
            "temperature_2m_min": [15.0] * days,
            "precipitation_probability_max": [20] * days,
            "precipitation_sum": [1.2] * days,
            "wind_speed_10m_max": [22.0] * days,
            "wind_direction_10m_dominant": [210] * days,
            "wind_gusts_10m_max": [35.0] * days,
            "uv_index_max": [6.5] * days,
            "sunrise": [f"{day}T05:42" for day in dates],
            "sunset": [f"{day}T21:11" for day in dates],
        },
    }


class ForecastProvider:
    """Programmable stand-in for the forecast API behind an httpx.MockTransport."""

    def __init__(self, payload: Optional[Dict[str, Any]] = None) -> None:
        self.payload = payload if payload is not None else build_raw_forecast()
        self.status_code = 200
        self.error: Optional[Exception] = None
        self.requests: List[httpx.Request] = []
        self.on_request: Optional[Callable[[httpx.Request], None]] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request is not None:
            self.on_request(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)

    def fail(self) -> None:
        self.error = httpx.ConnectError("network unreachable")


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_alert_dispatcher() -> None:
    asyncio.run(alert_dispatcher.clear())
    yield
    asyncio.run(alert_dispatcher.clear())


@pytest.fixture
def settings_override() -> Callable[..., None]:
    original: Dict[str, Any] = {}

    def _apply(**overrides: Any) -> None:
        for key, value in overrides.items():
            if key not in original:
                original[key] = getattr(settings, key)
            setattr(settings, key, value)

    yield _apply

    for key, value in original.items():
        setattr(settings, key, value)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> ForecastProvider:
    return ForecastProvider()


@pytest.fixture
def weather_service(tmp_path: Path, clock: FakeClock, provider: ForecastProvider) -> WeatherService:
    service = create_weather_service(
        db_path=tmp_path / "offline_cache.sqlite",
        transport=httpx.MockTransport(provider),
        alert_dispatcher=alert_dispatcher,
        clock=clock,
    )
    yield service
    asyncio.run(service.close())


@pytest.fixture
def client(weather_service: WeatherService) -> TestClient:
    app = create_app(weather_service)
    with TestClient(app) as test_client:
        yield test_client
