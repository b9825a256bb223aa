from __future__ import annotations

from fastapi import HTTPException, Request, status

from services.circuits import CATEGORIES, Circuit, get_circuit_by_slug
from services.weather import WeatherService


def get_weather_service(request: Request) -> WeatherService:
    return request.app.state.weather_service


def get_circuit_or_404(category: str, slug: str) -> Circuit:
    if category not in CATEGORIES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown category")
    circuit = get_circuit_by_slug(slug, category)
    if circuit is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Circuit not found")
    return circuit
