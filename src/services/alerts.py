from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Deque, Dict, Iterable, List, Set

import httpx

from config import settings
from services.forecast_models import WeatherAlert

logger = logging.getLogger("circuitweather.alerts")

NOTIFY_SEVERITIES = frozenset({"severe", "extreme"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime) -> str:
    iso = value.astimezone(timezone.utc).isoformat(timespec="seconds")
    if iso.endswith("+00:00"):
        return iso[:-6] + "Z"
    return iso


@dataclass(slots=True)
class AlertNotification:
    timestamp: str
    circuit: str
    kind: str
    severity: str
    title: str
    body: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class AlertDispatcher:
    """Forwards newly raised severe weather alerts to the notification sink.

    The alert engine is stateless and reports the same hazards on every
    forecast build; this dispatcher remembers which (circuit, kind) pairs are
    active so a hazard is only sent once until it clears.
    """

    def __init__(self) -> None:
        self._history: Deque[AlertNotification] = deque(maxlen=200)
        self._lock = asyncio.Lock()
        self._active: Dict[str, Set[str]] = {}
        self._http_client: httpx.AsyncClient | None = None
        self._history_limit = 200
        self._webhook_url: str | None = None
        self._enabled = True
        self._apply_settings()

    def _apply_settings(self) -> None:
        history_limit = max(10, settings.alerts_history_limit)
        if history_limit != self._history_limit:
            snapshot = list(self._history)[-history_limit:]
            self._history = deque(snapshot, maxlen=history_limit)
            self._history_limit = history_limit
        self._webhook_url = settings.alerts_webhook_url or None
        self._enabled = bool(settings.alerts_notifications_enabled)

    async def sync(self, circuit: str, alerts: Iterable[WeatherAlert]) -> List[AlertNotification]:
        """Record the alerts currently firing for ``circuit`` and notify on new severe ones."""
        self._apply_settings()
        firing = {alert.kind: alert for alert in alerts if alert.severity in NOTIFY_SEVERITIES}
        timestamp = _isoformat(_utc_now())
        created: List[AlertNotification] = []
        async with self._lock:
            previous = self._active.get(circuit, set())
            self._active[circuit] = set(firing)
            if not self._enabled:
                return []
            for kind, alert in firing.items():
                if kind in previous:
                    continue
                notification = AlertNotification(
                    timestamp=timestamp,
                    circuit=circuit,
                    kind=kind,
                    severity=alert.severity,
                    title=f"⚠️ {alert.title}",
                    body=f"{circuit}: {alert.description}",
                )
                self._history.append(notification)
                created.append(notification)

        for notification in created:
            await self._dispatch(notification)
        return created

    async def list_notifications(self, *, limit: int = 50, circuit: str | None = None) -> List[Dict[str, object]]:
        async with self._lock:
            snapshot = list(self._history)
        if circuit:
            snapshot = [item for item in snapshot if item.circuit == circuit]
        if limit > 0:
            snapshot = snapshot[-limit:]
        return [item.to_dict() for item in snapshot]

    async def clear(self) -> None:
        async with self._lock:
            self._history.clear()
            self._active.clear()

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _dispatch(self, notification: AlertNotification) -> None:
        if not self._webhook_url:
            logger.info("Weather alert for %s: %s", notification.circuit, notification.title)
            return
        try:
            await self._send_webhook(notification)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Alert notification delivery failed: %s", exc)

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=10.0)
        return self._http_client

    async def _send_webhook(self, notification: AlertNotification) -> None:
        client = await self._get_http_client()
        response = await client.post(self._webhook_url, json=notification.to_dict())
        response.raise_for_status()


alert_dispatcher = AlertDispatcher()

__all__ = ["AlertDispatcher", "AlertNotification", "alert_dispatcher"]
