import pytest

from services.units import (
    convert_precipitation,
    get_precipitation_unit,
    get_speed_unit,
    get_temperature_unit,
    to_provider_units,
    visibility_in_display_units,
)


def test_precipitation_is_converted_from_millimetres():
    assert convert_precipitation(12.7, "imperial") == 0.5
    assert convert_precipitation(1.234, "metric") == 1.23


def test_unit_labels():
    assert get_precipitation_unit("metric") == "mm"
    assert get_precipitation_unit("imperial") == "in"
    assert get_speed_unit("metric") == "km/h"
    assert get_speed_unit("imperial") == "mph"
    assert get_temperature_unit("imperial") == "°F"


def test_provider_unit_params():
    assert to_provider_units("imperial") == {"temperature_unit": "fahrenheit", "wind_speed_unit": "mph"}
    assert to_provider_units("metric") == {"temperature_unit": "celsius", "wind_speed_unit": "kmh"}


def test_visibility_display_units():
    assert visibility_in_display_units(5000, "metric") == 5.0
    assert visibility_in_display_units(1609.344, "imperial") == pytest.approx(1.0)


def test_precipitation_round_trip_values():
    assert convert_precipitation(0, "metric") == 0
    assert convert_precipitation(25.4, "imperial") == pytest.approx(1.0, abs=0.001)
