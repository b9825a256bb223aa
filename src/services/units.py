from __future__ import annotations

from typing import Dict

from services.sanitize import Unit

MM_PER_INCH = 25.4
METERS_PER_MILE = 1609.344


def convert_precipitation(mm: float, unit: Unit) -> float:
    """Convert a millimetre amount to the display unit.

    The provider always reports precipitation in millimetres, whatever unit
    system was requested for temperature and wind.
    """
    if unit == "imperial":
        return round(mm / MM_PER_INCH, 3)
    return round(mm, 2)


def get_precipitation_unit(unit: Unit) -> str:
    return "in" if unit == "imperial" else "mm"


def get_speed_unit(unit: Unit) -> str:
    return "mph" if unit == "imperial" else "km/h"


def get_temperature_unit(unit: Unit) -> str:
    return "°F" if unit == "imperial" else "°C"


def to_provider_units(unit: Unit) -> Dict[str, str]:
    """Query parameters asking Open-Meteo to deliver temperature and wind in ``unit``."""
    return {
        "temperature_unit": "fahrenheit" if unit == "imperial" else "celsius",
        "wind_speed_unit": "mph" if unit == "imperial" else "kmh",
    }


def visibility_in_display_units(meters: float, unit: Unit) -> float:
    """Visibility in kilometres (metric) or miles (imperial)."""
    if unit == "imperial":
        return meters / METERS_PER_MILE
    return meters / 1000.0
