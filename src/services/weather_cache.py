"""Two cache tiers for normalized weather.

Tier 1 (:class:`MemoryWeatherCache`) is a process-lifetime map with a short
TTL that spares redundant provider calls. Tier 2 (:class:`OfflineWeatherStore`)
keeps the last payload per circuit in a durable key/value store so something
can still be shown when the provider is unreachable.

Both tiers are read and written from a single event loop without locks. The
read-modify-write of the recent-circuits list would need a lock if these were
ever shared between threads.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from services.forecast_models import WeatherPayload
from services.kv_store import KeyValueStore

logger = logging.getLogger("circuitweather.cache")

WEATHER_CACHE_PREFIX = "@weather_cache_"
RECENT_CIRCUITS_KEY = "@recent_circuits"
DEFAULT_MEMORY_TTL_SECONDS = 10 * 60
DEFAULT_STALE_AFTER_SECONDS = 30 * 60
DEFAULT_MAX_CIRCUITS = 10

Clock = Callable[[], float]


def memory_cache_key(latitude: float, longitude: float, unit: str) -> str:
    return f"{latitude},{longitude},{unit}"


def offline_cache_key(circuit_slug: str, category: str) -> str:
    return f"{WEATHER_CACHE_PREFIX}{circuit_slug}_{category}"


@dataclass(frozen=True, slots=True)
class MemoryCacheEntry:
    timestamp: float
    payload: WeatherPayload


class MemoryWeatherCache:
    """Short-TTL map keyed by the exact ``"lat,lon,unit"`` triple.

    Not size bounded: a session only ever views a handful of locations.
    """

    def __init__(self, *, ttl_seconds: float = DEFAULT_MEMORY_TTL_SECONDS, clock: Clock = time.time) -> None:
        self._ttl = max(ttl_seconds, 0.0)
        self._clock = clock
        self._entries: Dict[str, MemoryCacheEntry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, latitude: float, longitude: float, unit: str) -> Optional[WeatherPayload]:
        entry = self._entries.get(memory_cache_key(latitude, longitude, unit))
        if entry is None:
            return None
        age = self._clock() - entry.timestamp
        if age < self._ttl:
            logger.debug("Memory cache hit for %s,%s,%s (age %.1fs)", latitude, longitude, unit, age)
            return entry.payload
        return None

    def put(self, latitude: float, longitude: float, unit: str, payload: WeatherPayload) -> None:
        # Last completed write wins; concurrent fetches for one key are not coalesced.
        self._entries[memory_cache_key(latitude, longitude, unit)] = MemoryCacheEntry(
            timestamp=self._clock(),
            payload=payload,
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True, slots=True)
class OfflineWeather:
    payload: WeatherPayload
    is_stale: bool
    last_viewed: float


@dataclass(frozen=True, slots=True)
class RecentCircuit:
    slug: str
    category: str
    timestamp: float

    def to_dict(self) -> Dict[str, object]:
        return {"slug": self.slug, "category": self.category, "timestamp": self.timestamp}


@dataclass(frozen=True, slots=True)
class CacheStats:
    total_cached: int
    total_size_bytes: int
    oldest_timestamp: Optional[float]
    newest_timestamp: Optional[float]

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_cached": self.total_cached,
            "total_size_bytes": self.total_size_bytes,
            "oldest_timestamp": self.oldest_timestamp,
            "newest_timestamp": self.newest_timestamp,
        }


EMPTY_STATS = CacheStats(total_cached=0, total_size_bytes=0, oldest_timestamp=None, newest_timestamp=None)


class OfflineWeatherStore:
    """Durable per-circuit weather cache with a most-recently-viewed list.

    Reads never fail: an unreadable record is a miss. Writes never fail the
    caller: errors are logged and dropped. Entries have no TTL; staleness is
    reported to the reader, which still gets the data.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS,
        max_circuits: int = DEFAULT_MAX_CIRCUITS,
        clock: Clock = time.time,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._stale_after = max(stale_after_seconds, 0.0)
        self._max_circuits = max(max_circuits, 1)
        self._clock = clock
        self._log = log or logger

    async def cache_weather(self, circuit_slug: str, category: str, payload: WeatherPayload) -> None:
        now = self._clock()
        record = {
            "circuitSlug": circuit_slug,
            "category": category,
            "weatherData": replace(payload, timestamp=now).to_payload(),
            "lastViewed": now,
        }
        try:
            await self._store.set(offline_cache_key(circuit_slug, category), json.dumps(record))
        except Exception:  # noqa: BLE001 - a failed cache write must not fail the request
            self._log.error("Failed to cache weather data for %s/%s", circuit_slug, category, exc_info=True)
            return
        await self._update_recent_circuits(circuit_slug, category, now)
        self._log.debug("Cached weather data for %s/%s", circuit_slug, category)

    async def get_cached_weather(self, circuit_slug: str, category: str) -> Optional[OfflineWeather]:
        try:
            raw = await self._store.get(offline_cache_key(circuit_slug, category))
            if raw is None:
                self._log.debug("No cached data for %s/%s", circuit_slug, category)
                return None
            record = json.loads(raw)
            payload = WeatherPayload.from_payload(record["weatherData"])
            last_viewed = float(record.get("lastViewed", payload.timestamp))
        except Exception:  # noqa: BLE001 - corrupt or unreadable records count as a miss
            self._log.warning("Unreadable cached weather for %s/%s", circuit_slug, category, exc_info=True)
            return None
        age = self._clock() - payload.timestamp
        self._log.debug("Retrieved cached data for %s/%s (age %ds)", circuit_slug, category, round(age))
        return OfflineWeather(payload=payload, is_stale=age > self._stale_after, last_viewed=last_viewed)

    async def has_cached_data(self, circuit_slug: str, category: str) -> bool:
        try:
            return await self._store.get(offline_cache_key(circuit_slug, category)) is not None
        except Exception:  # noqa: BLE001
            self._log.warning("Failed to check cached data for %s/%s", circuit_slug, category, exc_info=True)
            return False

    async def get_recent_circuits(self) -> List[RecentCircuit]:
        try:
            raw = await self._store.get(RECENT_CIRCUITS_KEY)
            if raw is None:
                return []
            return [
                RecentCircuit(slug=str(item["slug"]), category=str(item["category"]), timestamp=float(item["timestamp"]))
                for item in json.loads(raw)
            ]
        except Exception:  # noqa: BLE001
            self._log.warning("Unreadable recent circuits list", exc_info=True)
            return []

    async def _update_recent_circuits(self, circuit_slug: str, category: str, now: float) -> None:
        recent = [
            item
            for item in await self.get_recent_circuits()
            if not (item.slug == circuit_slug and item.category == category)
        ]
        recent.insert(0, RecentCircuit(slug=circuit_slug, category=category, timestamp=now))
        recent = recent[: self._max_circuits]
        try:
            await self._store.set(RECENT_CIRCUITS_KEY, json.dumps([item.to_dict() for item in recent]))
        except Exception:  # noqa: BLE001
            self._log.error("Failed to update recent circuits", exc_info=True)

    async def clear_old_cache(self) -> int:
        """Delete cached circuits that fell out of the recent list. Returns the number removed."""
        try:
            recent_keys = {offline_cache_key(item.slug, item.category) for item in await self.get_recent_circuits()}
            weather_keys = [key for key in await self._store.get_all_keys() if key.startswith(WEATHER_CACHE_PREFIX)]
            stale_keys = [key for key in weather_keys if key not in recent_keys]
            if stale_keys:
                await self._store.multi_remove(stale_keys)
                self._log.info("Cleared %d old cache entries", len(stale_keys))
            return len(stale_keys)
        except Exception:  # noqa: BLE001
            self._log.error("Failed to clear old cache entries", exc_info=True)
            return 0

    async def clear_all_cache(self) -> int:
        try:
            weather_keys = [key for key in await self._store.get_all_keys() if key.startswith(WEATHER_CACHE_PREFIX)]
            if weather_keys:
                await self._store.multi_remove(weather_keys)
            await self._store.remove(RECENT_CIRCUITS_KEY)
            self._log.info("Cleared all %d cache entries", len(weather_keys))
            return len(weather_keys)
        except Exception:  # noqa: BLE001
            self._log.error("Failed to clear cache", exc_info=True)
            return 0

    async def get_cache_stats(self) -> CacheStats:
        try:
            weather_keys = [key for key in await self._store.get_all_keys() if key.startswith(WEATHER_CACHE_PREFIX)]
            total_size = 0
            timestamps: List[float] = []
            for key in weather_keys:
                raw = await self._store.get(key)
                if raw is None:
                    continue
                total_size += len(raw.encode("utf-8"))
                timestamps.append(float(json.loads(raw)["weatherData"]["timestamp"]))
        except Exception:  # noqa: BLE001
            self._log.error("Failed to compute cache stats", exc_info=True)
            return EMPTY_STATS
        return CacheStats(
            total_cached=len(weather_keys),
            total_size_bytes=total_size,
            oldest_timestamp=min(timestamps) if timestamps else None,
            newest_timestamp=max(timestamps) if timestamps else None,
        )
