from conftest import CURRENT_HOUR, build_raw_forecast
from services.snapshot import CURRENT_FIELDS, HOURLY_POINTS, build_forecast, current_hour_index, upcoming_hours


def test_build_forecast_normalizes_current_conditions():
    bundle = build_forecast(build_raw_forecast(), "metric")
    snapshot = bundle.snapshot
    assert snapshot.time == "2026-06-07T14:00"
    assert snapshot.temperature == 21.5
    assert snapshot.apparent_temperature == 20.0
    assert snapshot.wind_speed == 12.0
    assert snapshot.wind_direction == 200.0
    assert snapshot.humidity == 60.0
    assert snapshot.pressure == 1012.4
    assert snapshot.is_day is True
    # Not part of this current block; taken from the 14:00 forecast hour.
    assert snapshot.visibility == 24_000.0
    assert snapshot.uv_index == 4.5
    assert snapshot.dew_point == 11.0


def test_garbled_values_fall_back_instead_of_raising():
    raw = build_raw_forecast(wind_speed="not-a-number", temperature=999, wind_direction=-90)
    snapshot = build_forecast(raw, "metric").snapshot
    assert snapshot.wind_speed == 0.0
    assert snapshot.temperature == 60.0
    assert snapshot.wind_direction == 270.0


def test_missing_sections_produce_defaults():
    bundle = build_forecast({"current": "oops", "hourly": None}, "metric")
    assert bundle.hourly == []
    assert bundle.daily == []
    assert bundle.snapshot.temperature == 0.0
    assert bundle.snapshot.humidity == 50.0
    assert bundle.snapshot.pressure == 1013.0
    assert bundle.snapshot.visibility == 10_000.0


def test_non_mapping_payload_is_tolerated():
    bundle = build_forecast(["not", "a", "forecast"], "imperial")
    assert bundle.snapshot.weather_code == 0
    assert bundle.hourly == []


def test_apparent_temperature_defaults_to_temperature():
    raw = build_raw_forecast(temperature=18.0)
    del raw["current"]["apparent_temperature"]
    assert build_forecast(raw, "metric").snapshot.apparent_temperature == 18.0


def test_hourly_series_is_capped():
    raw = build_raw_forecast(hours=100)
    assert len(build_forecast(raw, "metric").hourly) == HOURLY_POINTS
    assert len(build_forecast(raw, "metric", hours=10).hourly) == 10


def test_hourly_series_tolerates_short_columns():
    raw = build_raw_forecast(hours=6)
    raw["hourly"]["temperature_2m"] = [15.0, 16.0]
    hourly = build_forecast(raw, "metric").hourly
    assert len(hourly) == 6
    assert [point.temperature for point in hourly[:3]] == [15.0, 16.0, 0.0]


def test_daily_entries_carry_weekday_and_local_times():
    daily = build_forecast(build_raw_forecast(days=2), "metric").daily
    assert [day.date for day in daily] == ["2026-06-07", "2026-06-08"]
    assert [day.weekday for day in daily] == ["Sun", "Mon"]
    assert daily[0].sunrise == "05:42"
    assert daily[0].sunset == "21:11"
    assert daily[0].wind_direction == 210.0


def test_precipitation_converted_for_imperial():
    raw = build_raw_forecast(precipitation=[12.7])
    hourly = build_forecast(raw, "imperial").hourly
    assert hourly[CURRENT_HOUR].precipitation == 0.5
    assert hourly[CURRENT_HOUR + 1].precipitation == 0.0
    assert hourly[0].precipitation == 0.0


def test_build_forecast_is_deterministic():
    raw = build_raw_forecast()
    assert build_forecast(raw, "metric") == build_forecast(raw, "metric")


def test_current_block_requests_fields_the_snapshot_reports():
    assert {"visibility", "uv_index", "dew_point_2m"} <= set(CURRENT_FIELDS)


def test_missing_current_fields_use_the_matching_hour():
    fog_until_morning = [500.0] * 6 + [20_000.0] * 18
    raw = build_raw_forecast(visibility=fog_until_morning)
    raw["hourly"]["uv_index"] = [0.0] * CURRENT_HOUR + [7.0] * (24 - CURRENT_HOUR)
    snapshot = build_forecast(raw, "metric").snapshot
    assert snapshot.visibility == 20_000.0
    assert snapshot.uv_index == 7.0


def test_current_block_value_wins_over_hourly():
    raw = build_raw_forecast(visibility=[500.0] * 24)
    raw["current"]["visibility"] = 15_000.0
    assert build_forecast(raw, "metric").snapshot.visibility == 15_000.0


def test_current_hour_index_locates_now():
    times = [f"2026-06-07T{hour:02d}:00" for hour in range(24)]
    assert current_hour_index(times, "2026-06-07T14:00") == 14
    assert current_hour_index(times, "2026-06-07T14:45") == 14
    assert current_hour_index(times, "") == 0
    assert current_hour_index(times, "2026-06-08T03:00") == 24


def test_upcoming_hours_start_at_current_hour():
    hourly = build_forecast(build_raw_forecast(), "metric").hourly
    upcoming = upcoming_hours(hourly, "2026-06-07T14:00")
    assert upcoming[0].time == "2026-06-07T14:00"
    assert len(upcoming) == 24 - CURRENT_HOUR
