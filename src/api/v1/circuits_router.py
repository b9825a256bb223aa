from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from services.circuits import CATEGORIES, Circuit, list_circuits, main_straight_direction, search_circuits, track_sections
from services.sanitize import normalize_direction, sanitize_wind_speed
from services.units import get_speed_unit
from services.weather import FETCH_FAILED, WeatherService
from services.wind_impact import analyze_track_wind, decompose_sections
from .dependencies import get_circuit_or_404, get_weather_service
from .weather_router import UnitParam, WeatherResponse, to_response

router = APIRouter(prefix="/circuits", tags=["circuits"])


class CircuitModel(BaseModel):
    slug: str
    name: str
    country: str
    latitude: float
    longitude: float
    category: str
    track_direction: float | None = None


class WindComponentsModel(BaseModel):
    headwind: float
    tailwind: float
    crosswind: float
    type: Literal["headwind", "tailwind", "crosswind"]
    strength: float = Field(ge=0.0, le=1.0)


class SectionWindModel(BaseModel):
    x: float
    y: float
    heading: float
    kind: Literal["straight", "corner"]
    importance: float
    wind: WindComponentsModel


class TrackWindModel(BaseModel):
    head_tailwind: float
    crosswind: float
    wind_type: Literal["headwind", "tailwind", "crosswind", "calm"]
    relative_direction: str
    description: str
    impact_level: Literal["low", "moderate", "high", "severe"]


class WindImpactResponse(BaseModel):
    circuit: CircuitModel
    unit: UnitParam
    speed_unit: str
    wind_from: float
    wind_speed: float
    main_straight_direction: float | None = None
    main_straight: TrackWindModel | None = None
    sections: list[SectionWindModel]


def _circuit_model(circuit: Circuit) -> CircuitModel:
    return CircuitModel(**circuit.to_dict())


@router.get("", response_model=list[CircuitModel])
async def list_all(
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None, min_length=1),
) -> list[CircuitModel]:
    if category is not None and category not in CATEGORIES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown category")
    circuits = search_circuits(q, category) if q else list_circuits(category)
    return [_circuit_model(circuit) for circuit in circuits]


@router.get("/{category}/{slug}", response_model=CircuitModel)
async def get_circuit(circuit: Circuit = Depends(get_circuit_or_404)) -> CircuitModel:
    return _circuit_model(circuit)


@router.get("/{category}/{slug}/weather", response_model=WeatherResponse)
async def get_circuit_weather(
    unit: UnitParam = Query("metric"),
    circuit: Circuit = Depends(get_circuit_or_404),
    service: WeatherService = Depends(get_weather_service),
) -> WeatherResponse:
    result = await service.get_weather(
        circuit.latitude,
        circuit.longitude,
        unit,
        circuit_slug=circuit.slug,
        category=circuit.category,
    )
    assert result is not None
    return to_response(result, circuit.latitude, circuit.longitude, unit)


@router.get("/{category}/{slug}/wind", response_model=WindImpactResponse)
async def get_circuit_wind(
    unit: UnitParam = Query("metric"),
    wind_from: Optional[float] = Query(None, description="Override wind direction (degrees, blowing from)"),
    wind_speed: Optional[float] = Query(None, ge=0.0, description="Override wind speed in the requested unit"),
    circuit: Circuit = Depends(get_circuit_or_404),
    service: WeatherService = Depends(get_weather_service),
) -> WindImpactResponse:
    if wind_from is None or wind_speed is None:
        result = await service.get_weather(
            circuit.latitude,
            circuit.longitude,
            unit,
            circuit_slug=circuit.slug,
            category=circuit.category,
        )
        if result is None or result.snapshot is None:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=FETCH_FAILED)
        direction = result.snapshot.wind_direction if wind_from is None else normalize_direction(wind_from)
        speed = result.snapshot.wind_speed if wind_speed is None else sanitize_wind_speed(wind_speed, unit)
    else:
        direction, speed = normalize_direction(wind_from), sanitize_wind_speed(wind_speed, unit)

    straight = main_straight_direction(circuit)
    analysis = analyze_track_wind(speed, direction, straight, unit) if straight is not None else None
    sections = [
        SectionWindModel(**section.to_dict(), wind=WindComponentsModel(**components.to_dict()))
        for section, components in decompose_sections(track_sections(circuit.slug), direction, speed)
    ]
    return WindImpactResponse(
        circuit=_circuit_model(circuit),
        unit=unit,
        speed_unit=get_speed_unit(unit),
        wind_from=direction,
        wind_speed=speed,
        main_straight_direction=straight,
        main_straight=TrackWindModel(**analysis.to_dict()) if analysis is not None else None,
        sections=sections,
    )
