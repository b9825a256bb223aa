from pathlib import Path
from typing import Callable

import httpx
import pytest

from conftest import FakeClock, ForecastProvider, build_raw_forecast
from services.alerts import alert_dispatcher
from services.weather import FETCH_FAILED, WeatherFetchError, WeatherRequest, WeatherService, create_weather_service

MONZA = (45.6183, 9.2811)


@pytest.mark.anyio
async def test_fresh_fetch_returns_live_result(
    weather_service: WeatherService,
    provider: ForecastProvider,
    clock: FakeClock,
) -> None:
    result = await weather_service.get_weather(*MONZA, "metric")

    assert result is not None
    assert result.error is None
    assert result.is_offline is False
    assert result.is_cached is False
    assert result.last_updated == clock.now
    assert result.snapshot.temperature == 21.5
    assert len(result.hourly) == 24
    assert result.hourly[0].time == "2026-06-07T00:00"
    assert len(result.daily) == 7

    request = provider.requests[0]
    assert request.url.path == "/v1/forecast"
    assert request.url.params["latitude"] == "45.6183"
    assert request.url.params["temperature_unit"] == "celsius"
    assert request.url.params["wind_speed_unit"] == "kmh"
    assert request.url.params["timezone"] == "auto"


@pytest.mark.anyio
async def test_memory_cache_spares_repeat_fetches(
    weather_service: WeatherService,
    provider: ForecastProvider,
    clock: FakeClock,
) -> None:
    await weather_service.get_weather(*MONZA, "metric")
    clock.advance(9 * 60)
    await weather_service.get_weather(*MONZA, "metric")
    assert len(provider.requests) == 1

    clock.advance(2 * 60)
    await weather_service.get_weather(*MONZA, "metric")
    assert len(provider.requests) == 2


@pytest.mark.anyio
async def test_unit_is_part_of_the_cache_key(weather_service: WeatherService, provider: ForecastProvider) -> None:
    await weather_service.get_weather(*MONZA, "metric")
    await weather_service.get_weather(*MONZA, "imperial")

    assert len(provider.requests) == 2
    assert provider.requests[1].url.params["temperature_unit"] == "fahrenheit"
    assert provider.requests[1].url.params["wind_speed_unit"] == "mph"


@pytest.mark.anyio
async def test_offline_copy_written_only_for_circuits(weather_service: WeatherService) -> None:
    await weather_service.get_weather(*MONZA, "metric")
    assert (await weather_service.get_cache_stats()).total_cached == 0

    await weather_service.get_weather(*MONZA, "imperial", circuit_slug="monza", category="f1")
    assert await weather_service.offline_store.has_cached_data("monza", "f1")
    recent = await weather_service.get_recent_circuits()
    assert [(item.slug, item.category) for item in recent] == [("monza", "f1")]


@pytest.mark.anyio
async def test_memory_hit_still_refreshes_recent_circuits(
    weather_service: WeatherService,
    provider: ForecastProvider,
) -> None:
    await weather_service.get_weather(*MONZA, "metric")
    await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1")

    assert len(provider.requests) == 1
    assert await weather_service.offline_store.has_cached_data("monza", "f1")


@pytest.mark.anyio
async def test_failure_without_offline_copy_reports_fetch_failed(
    weather_service: WeatherService,
    provider: ForecastProvider,
) -> None:
    provider.fail()
    result = await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1")

    assert result is not None
    assert result.error == FETCH_FAILED
    assert result.snapshot is None
    assert result.hourly == []


@pytest.mark.anyio
async def test_failure_falls_back_to_stale_offline_copy(
    weather_service: WeatherService,
    provider: ForecastProvider,
    clock: FakeClock,
) -> None:
    fetched_at = clock.now
    await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1")

    clock.advance(31 * 60)
    provider.fail()
    result = await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1")

    assert result is not None
    assert result.error is None
    assert result.is_offline is True
    assert result.is_cached is True
    assert result.is_stale is True
    assert result.last_updated == fetched_at
    assert result.snapshot.temperature == 21.5


@pytest.mark.anyio
async def test_http_error_status_is_a_fetch_failure(
    weather_service: WeatherService,
    provider: ForecastProvider,
) -> None:
    provider.status_code = 500
    with pytest.raises(WeatherFetchError):
        await weather_service.fetch_forecast(*MONZA, "metric")

    result = await weather_service.get_weather(*MONZA, "metric")
    assert result.error == FETCH_FAILED


@pytest.mark.anyio
async def test_invalid_json_is_a_fetch_failure(tmp_path: Path, clock: FakeClock) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>maintenance</html>"))
    service = create_weather_service(db_path=tmp_path / "cache.sqlite", transport=transport, clock=clock)
    try:
        result = await service.get_weather(*MONZA, "metric")
    finally:
        await service.close()
    assert result.error == FETCH_FAILED


@pytest.mark.anyio
async def test_cancelled_request_has_no_side_effects(
    weather_service: WeatherService,
    provider: ForecastProvider,
) -> None:
    handle = WeatherRequest()
    provider.on_request = lambda request: handle.cancel()

    result = await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1", request=handle)

    assert result is None
    assert len(weather_service.memory_cache) == 0
    assert await weather_service.offline_store.has_cached_data("monza", "f1") is False
    assert await weather_service.get_recent_circuits() == []


@pytest.mark.anyio
async def test_cancelled_request_ignores_failures(
    weather_service: WeatherService,
    provider: ForecastProvider,
) -> None:
    handle = WeatherRequest()
    provider.on_request = lambda request: handle.cancel()
    provider.fail()

    assert await weather_service.get_weather(*MONZA, "metric", request=handle) is None


@pytest.mark.anyio
async def test_severe_alerts_are_dispatched_once(
    weather_service: WeatherService,
    provider: ForecastProvider,
    clock: FakeClock,
) -> None:
    provider.payload = build_raw_forecast(wind_speed=80.0)
    result = await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1")
    assert [alert.kind for alert in result.alerts] == ["wind"]

    clock.advance(11 * 60)
    await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1")

    notifications = await alert_dispatcher.list_notifications(circuit="monza")
    assert len(notifications) == 1
    assert notifications[0]["severity"] == "severe"


@pytest.mark.anyio
async def test_clear_all_cache_empties_both_tiers(weather_service: WeatherService, provider: ForecastProvider) -> None:
    await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1")

    assert await weather_service.clear_all_cache() == 1
    assert len(weather_service.memory_cache) == 0

    await weather_service.get_weather(*MONZA, "metric")
    assert len(provider.requests) == 2


@pytest.mark.anyio
async def test_heavy_rain_alert_reads_hours_ahead_of_now(
    weather_service: WeatherService,
    provider: ForecastProvider,
) -> None:
    raw = build_raw_forecast()
    raw["hourly"]["precipitation"] = [0.0] * 14 + [9.0] * 6 + [0.0] * 4
    provider.payload = raw

    result = await weather_service.get_weather(*MONZA, "metric")

    assert result is not None
    assert [alert.kind for alert in result.alerts] == ["rain"]


@pytest.mark.anyio
async def test_rain_earlier_in_the_day_raises_no_alert(
    weather_service: WeatherService,
    provider: ForecastProvider,
) -> None:
    raw = build_raw_forecast()
    raw["hourly"]["precipitation"] = [9.0] * 6 + [0.0] * 18
    provider.payload = raw

    result = await weather_service.get_weather(*MONZA, "metric")

    assert result is not None
    assert result.alerts == []


@pytest.mark.anyio
async def test_malformed_webhook_url_does_not_fail_weather_fetch(
    weather_service: WeatherService,
    provider: ForecastProvider,
    settings_override: Callable[..., None],
    caplog: pytest.LogCaptureFixture,
) -> None:
    settings_override(alerts_webhook_url="http://[::1")
    provider.payload = build_raw_forecast(wind_speed=80.0)

    result = await weather_service.get_weather(*MONZA, "metric", circuit_slug="monza", category="f1")

    assert result is not None
    assert result.error is None
    assert [alert.kind for alert in result.alerts] == ["wind"]
    assert "Alert notification delivery failed" in caplog.text
