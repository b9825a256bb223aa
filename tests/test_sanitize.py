import math

import pytest

from services.sanitize import (
    normalize_direction,
    sanitize,
    sanitize_humidity,
    sanitize_pressure,
    sanitize_temperature,
    sanitize_visibility,
    sanitize_weather_code,
    sanitize_wind_speed,
)


@pytest.mark.parametrize("value", [None, math.nan, math.inf, -math.inf, True, "abc", "", [], {}])
def test_sanitize_uses_fallback_for_non_numbers(value):
    assert sanitize(value, 7.5) == 7.5


def test_sanitize_clamps_to_bounds():
    assert sanitize(-5, 0.0, 0.0, 10.0) == 0.0
    assert sanitize(15, 0.0, 0.0, 10.0) == 10.0
    assert sanitize(4, 0.0, 0.0, 10.0) == 4.0


def test_sanitize_clamps_fallback_too():
    assert sanitize(None, 20.0, 0.0, 10.0) == 10.0


def test_sanitize_parses_numeric_strings():
    assert sanitize(" 12.5 ", 0.0) == 12.5


def test_temperature_bounds_follow_unit():
    assert sanitize_temperature(999, "metric") == 60.0
    assert sanitize_temperature(999, "imperial") == 140.0
    assert sanitize_temperature(-999, "imperial") == -76.0
    assert sanitize_temperature(None, "metric") == 0.0


def test_wind_speed_bounds_follow_unit():
    assert sanitize_wind_speed(500, "metric") == 300.0
    assert sanitize_wind_speed(500, "imperial") == 186.0
    assert sanitize_wind_speed("not-a-number", "metric") == 0.0
    assert sanitize_wind_speed(-3, "metric") == 0.0


def test_quantity_fallbacks():
    assert sanitize_humidity(None) == 50.0
    assert sanitize_pressure(None) == 1013.0
    assert sanitize_pressure(2000) == 1085.0
    assert sanitize_visibility(None) == 10_000.0


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0, 0.0), (360, 0.0), (725, 5.0), (-90, 270.0), (-1e-15, 0.0), (None, 0.0), (math.nan, 0.0)],
)
def test_normalize_direction_wraps(value, expected):
    result = normalize_direction(value)
    assert 0.0 <= result < 360.0
    assert result == pytest.approx(expected)


def test_weather_code_is_integer_in_range():
    assert sanitize_weather_code(95.7) == 95
    assert sanitize_weather_code(150) == 99
    assert sanitize_weather_code("x") == 0


@pytest.mark.parametrize("direction", [-725.5, -90.0, 0.0, 13.25, 359.9])
def test_normalize_direction_is_periodic(direction):
    expected = normalize_direction(direction)
    for turns in (-3, -1, 1, 4):
        assert normalize_direction(direction + 360 * turns) == pytest.approx(expected, abs=1e-9)


@pytest.mark.parametrize("value", [math.nan, "12", None, -1e9, 1e9, math.inf])
def test_sanitized_values_always_within_bounds(value):
    result = sanitize(value, 3.0, -5.0, 5.0)
    assert math.isfinite(result)
    assert -5.0 <= result <= 5.0
