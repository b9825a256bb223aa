from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from services.alerts import alert_dispatcher
from services.forecast_models import WeatherResult
from services.weather import FETCH_FAILED, WeatherService
from .dependencies import get_weather_service

router = APIRouter(prefix="/weather", tags=["weather"])
cache_router = APIRouter(prefix="/cache", tags=["cache"])

UnitParam = Literal["metric", "imperial"]


def validate_lat(lat: float = Query(..., ge=-90.0, le=90.0)) -> float:
	return lat


def validate_lon(lon: float = Query(..., ge=-180.0, le=180.0)) -> float:
	return lon


class WeatherResponse(BaseModel):
	location: dict[str, float]
	unit: UnitParam
	current: dict[str, Any] | None = None
	hourly: list[dict[str, Any]] = Field(default_factory=list)
	daily: list[dict[str, Any]] = Field(default_factory=list)
	alerts: list[dict[str, Any]] = Field(default_factory=list)
	is_offline: bool = Field(default=False, description="True when served from the offline cache after a failed fetch")
	is_cached: bool = Field(default=False, description="True when the data comes from the offline cache")
	is_stale: bool = Field(default=False, description="True when the offline copy is older than the staleness threshold")
	last_updated: float | None = Field(default=None, description="Unix timestamp of the underlying fetch")


class CacheStatsResponse(BaseModel):
	total_cached: int
	total_size_bytes: int
	oldest_timestamp: float | None = None
	newest_timestamp: float | None = None


class RecentCircuitModel(BaseModel):
	slug: str
	category: str
	timestamp: float


class CacheClearResponse(BaseModel):
	removed: int


def to_response(result: WeatherResult, lat: float, lon: float, unit: UnitParam) -> WeatherResponse:
	if result.error == FETCH_FAILED:
		raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=FETCH_FAILED)
	payload = result.to_payload()
	return WeatherResponse(
		location={"lat": lat, "lon": lon},
		unit=unit,
		current=payload["current"],
		hourly=payload["hourly"],
		daily=payload["daily"],
		alerts=payload["alerts"],
		is_offline=result.is_offline,
		is_cached=result.is_cached,
		is_stale=result.is_stale,
		last_updated=result.last_updated,
	)


@router.get("", response_model=WeatherResponse)
async def get_weather(
	lat: float = Depends(validate_lat),
	lon: float = Depends(validate_lon),
	unit: UnitParam = Query("metric"),
	service: WeatherService = Depends(get_weather_service),
) -> WeatherResponse:
	result = await service.get_weather(lat, lon, unit)
	assert result is not None
	return to_response(result, lat, lon, unit)


@router.get("/notifications")
async def list_notifications(
	limit: int = Query(50, ge=1, le=500),
	circuit: str | None = Query(None),
) -> list[dict[str, Any]]:
	return await alert_dispatcher.list_notifications(limit=limit, circuit=circuit)


@cache_router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(service: WeatherService = Depends(get_weather_service)) -> CacheStatsResponse:
	stats = await service.get_cache_stats()
	return CacheStatsResponse(**stats.to_dict())


@cache_router.get("/recent", response_model=list[RecentCircuitModel])
async def recent_circuits(service: WeatherService = Depends(get_weather_service)) -> list[RecentCircuitModel]:
	return [RecentCircuitModel(**item.to_dict()) for item in await service.get_recent_circuits()]


@cache_router.post("/cleanup", response_model=CacheClearResponse)
async def clear_old_cache(service: WeatherService = Depends(get_weather_service)) -> CacheClearResponse:
	return CacheClearResponse(removed=await service.clear_old_cache())


@cache_router.delete("", response_model=CacheClearResponse)
async def clear_all_cache(service: WeatherService = Depends(get_weather_service)) -> CacheClearResponse:
	return CacheClearResponse(removed=await service.clear_all_cache())
