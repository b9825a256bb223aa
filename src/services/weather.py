from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

from config import settings
from services.alerts import AlertDispatcher
from services.forecast_models import WeatherPayload, WeatherResult
from services.kv_store import SqliteKeyValueStore
from services.sanitize import Unit
from services.snapshot import CURRENT_FIELDS, DAILY_FIELDS, HOURLY_FIELDS, build_forecast, upcoming_hours
from services.units import to_provider_units
from services.weather_alerts import analyze_weather
from services.weather_cache import CacheStats, MemoryWeatherCache, OfflineWeatherStore, RecentCircuit

logger = logging.getLogger("circuitweather.weather")

FORECAST_ENDPOINT_PATH = "/forecast"
FETCH_FAILED = "fetch_failed"


class WeatherFetchError(Exception):
    """Raised when the forecast provider cannot be reached or answers with an error."""


@dataclass(slots=True)
class WeatherRequest:
    """Handle for one in-flight request; cancelling it discards the result.

    There is no way to abort the HTTP call itself. The flag is checked once the
    response arrives, before anything is cached.
    """

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class WeatherService:
    def __init__(
        self,
        *,
        memory_cache: MemoryWeatherCache,
        offline_store: OfflineWeatherStore,
        alert_dispatcher: Optional[AlertDispatcher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._memory = memory_cache
        self._offline = offline_store
        self._dispatcher = alert_dispatcher
        self._transport = transport
        self._clock = clock
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def memory_cache(self) -> MemoryWeatherCache:
        return self._memory

    @property
    def offline_store(self) -> OfflineWeatherStore:
        return self._offline

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "User-Agent": settings.weather_user_agent,
                "Accept": "application/json",
            }
            self._client = httpx.AsyncClient(
                base_url=settings.forecast_base_url,
                headers=headers,
                timeout=settings.weather_request_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_forecast(self, lat: float, lon: float, unit: Unit) -> Any:
        client = await self._get_client()
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": ",".join(CURRENT_FIELDS),
            "hourly": ",".join(HOURLY_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
            "forecast_days": settings.forecast_days,
            **to_provider_units(unit),
        }
        logger.debug("Fetching forecast with params %s", params)
        try:
            response = await client.get(FORECAST_ENDPOINT_PATH, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise WeatherFetchError(f"Forecast provider returned {exc.response.status_code}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise WeatherFetchError(f"Forecast request failed: {exc}") from exc
        except ValueError as exc:
            raise WeatherFetchError("Forecast provider returned invalid JSON") from exc

    async def get_weather(
        self,
        lat: float,
        lon: float,
        unit: Unit,
        *,
        circuit_slug: Optional[str] = None,
        category: Optional[str] = None,
        request: Optional[WeatherRequest] = None,
    ) -> Optional[WeatherResult]:
        """Return weather for a location, serving from cache when possible.

        ``None`` means the request was cancelled while the fetch was
        outstanding. A transport failure yields either the offline copy for
        the circuit or a result whose ``error`` is ``"fetch_failed"``.
        """
        circuit_key = (circuit_slug, category) if circuit_slug and category else None

        cached = self._memory.get(lat, lon, unit)
        if cached is not None:
            if circuit_key is not None:
                await self._offline.cache_weather(circuit_key[0], circuit_key[1], cached)
            return self._live_result(cached)

        try:
            raw = await self.fetch_forecast(lat, lon, unit)
        except WeatherFetchError as exc:
            if request is not None and request.cancelled:
                return None
            logger.warning("Weather fetch failed for %s,%s: %s", lat, lon, exc)
            return await self._fallback(circuit_key)

        if request is not None and request.cancelled:
            logger.debug("Discarding forecast for cancelled request %s,%s", lat, lon)
            return None

        bundle = build_forecast(raw, unit, hours=settings.hourly_forecast_hours)
        alerts = analyze_weather(bundle.snapshot, upcoming_hours(bundle.hourly, bundle.snapshot.time), unit)
        payload = WeatherPayload(
            snapshot=bundle.snapshot,
            daily=bundle.daily,
            hourly=bundle.hourly,
            alerts=alerts,
            timestamp=self._clock(),
            latitude=lat,
            longitude=lon,
            unit=unit,
        )

        try:
            self._memory.put(lat, lon, unit, payload)
        except Exception:  # noqa: BLE001 - caching must never fail the request
            logger.error("Failed to update memory cache for %s,%s,%s", lat, lon, unit, exc_info=True)
        if circuit_key is not None:
            await self._offline.cache_weather(circuit_key[0], circuit_key[1], payload)
            if self._dispatcher is not None:
                await self._dispatcher.sync(circuit_key[0], alerts)

        logger.info(
            "Weather fetch successful for %s,%s: %.1f %s, %d alert(s)",
            lat,
            lon,
            bundle.snapshot.temperature,
            unit,
            len(alerts),
        )
        return self._live_result(payload)

    async def _fallback(self, circuit_key: Optional[tuple[str, str]]) -> WeatherResult:
        if circuit_key is not None:
            offline = await self._offline.get_cached_weather(*circuit_key)
            if offline is not None:
                logger.info("Serving offline data for %s/%s (stale=%s)", circuit_key[0], circuit_key[1], offline.is_stale)
                payload = offline.payload
                return WeatherResult(
                    snapshot=payload.snapshot,
                    daily=payload.daily,
                    hourly=payload.hourly,
                    alerts=payload.alerts,
                    is_offline=True,
                    is_cached=True,
                    is_stale=offline.is_stale,
                    last_updated=payload.timestamp,
                )
        return WeatherResult(snapshot=None, daily=[], hourly=[], alerts=[], error=FETCH_FAILED)

    @staticmethod
    def _live_result(payload: WeatherPayload) -> WeatherResult:
        return WeatherResult(
            snapshot=payload.snapshot,
            daily=payload.daily,
            hourly=payload.hourly,
            alerts=payload.alerts,
            last_updated=payload.timestamp,
        )

    async def get_cache_stats(self) -> CacheStats:
        return await self._offline.get_cache_stats()

    async def get_recent_circuits(self) -> list[RecentCircuit]:
        return await self._offline.get_recent_circuits()

    async def clear_old_cache(self) -> int:
        return await self._offline.clear_old_cache()

    async def clear_all_cache(self) -> int:
        self._memory.clear()
        return await self._offline.clear_all_cache()


def create_weather_service(
    *,
    db_path: Optional[Path] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    alert_dispatcher: Optional[AlertDispatcher] = None,
    clock: Callable[[], float] = time.time,
) -> WeatherService:
    """Build the service with both cache tiers configured from settings."""
    store = SqliteKeyValueStore(db_path=db_path or Path(settings.offline_cache_db))
    return WeatherService(
        memory_cache=MemoryWeatherCache(ttl_seconds=settings.weather_cache_ttl, clock=clock),
        offline_store=OfflineWeatherStore(
            store,
            stale_after_seconds=settings.offline_stale_after_minutes * 60.0,
            max_circuits=settings.offline_max_circuits,
            clock=clock,
        ),
        alert_dispatcher=alert_dispatcher,
        transport=transport,
        clock=clock,
    )
