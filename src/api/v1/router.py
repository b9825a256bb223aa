from fastapi import APIRouter

from config import settings
from .circuits_router import router as circuits_router
from .weather_router import cache_router, router as weather_router

router = APIRouter(prefix="/api/v1", tags=["v1"])
router.include_router(weather_router)
router.include_router(circuits_router)
router.include_router(cache_router)


@router.get("/health")
async def health():
    return {"status": "ok", "version": settings.app_version}


@router.get("/info")
async def info():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "debug": settings.debug,
        "cors_origins": settings.cors_origins,
        "forecast_base_url": settings.forecast_base_url,
        "weather_cache_ttl": settings.weather_cache_ttl,
        "offline_stale_after_minutes": settings.offline_stale_after_minutes,
        "offline_max_circuits": settings.offline_max_circuits,
    }
