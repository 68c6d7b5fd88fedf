"""In-memory zone collection.

Zones are fetched as a snapshot and afterwards change only through
``zone:status_updated`` push events. Status has no lifecycle order, so
the latest applied value wins.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from geoalert.core.constants import CHANNEL_ZONES_FETCH
from geoalert.core.exceptions import PayloadContractError, RemoteFailure
from geoalert.geo.coords import render_ring
from geoalert.sync.notification_gate import NotificationGate

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from geoalert.clients.rest import ApiClient
    from geoalert.models.events import ZoneStatusUpdatedEvent
    from geoalert.models.zone import Zone, ZoneStatus

logger = logging.getLogger("geoalert.sync.zone_store")


class ZoneStore:
    """Owns the zone collection.

    Args:
        api: REST client used by ``fetch_snapshot``.
        gate: Failure notification gate.
    """

    def __init__(
        self,
        api: ApiClient | None = None,
        *,
        gate: NotificationGate | None = None,
    ) -> None:
        self._api = api
        self._gate = gate or NotificationGate()
        self._zones: dict[str, Zone] = {}
        self._lock = threading.Lock()
        self._observers: list[Callable[[tuple[Zone, ...]], None]] = []

    def fetch_snapshot(self, limit: int | None = None) -> tuple[Zone, ...]:
        """Fetch zones over REST and replace the collection.

        Raises:
            RemoteFailure: If the request fails.
            PayloadContractError: If the response has the wrong shape.
        """
        if self._api is None:
            msg = "ZoneStore has no ApiClient; pass one to fetch zones"
            raise RuntimeError(msg)
        try:
            zones = self._api.list_zones(limit=limit)
        except (RemoteFailure, PayloadContractError) as exc:
            logger.warning("Failed to load zones | error=%s", exc)
            self._gate.report_once(CHANNEL_ZONES_FETCH, "Failed to load zones")
            raise
        self._gate.report_success(CHANNEL_ZONES_FETCH)
        self.load_snapshot(zones)
        return self.zones()

    def load_snapshot(self, zones: Iterable[Zone]) -> None:
        with self._lock:
            self._zones = {zone.id: zone for zone in zones}
            count = len(self._zones)
        logger.info("Zone snapshot loaded | zones=%d", count)
        self._notify()

    def apply_status_event(self, event: ZoneStatusUpdatedEvent) -> bool:
        """Apply a pushed status change.

        Unknown zones are inserted when the event carries the full zone,
        otherwise ignored until the next snapshot.

        Returns:
            ``True`` if the collection changed.
        """
        with self._lock:
            current = self._zones.get(event.zone_id)
            if current is None:
                if event.zone is None:
                    logger.debug("Status for unknown zone ignored | zone_id=%s", event.zone_id)
                    return False
                updated = event.zone.with_status(event.status)
            elif current.status is event.status:
                return False
            else:
                updated = current.with_status(event.status)
            self._zones[event.zone_id] = updated
        logger.info(
            "Zone status updated | zone_id=%s | zone=%s | status=%s",
            updated.id,
            updated.name,
            updated.status.value,
        )
        self._notify()
        return True

    def zones(self) -> tuple[Zone, ...]:
        """All zones, highest priority first."""
        with self._lock:
            return tuple(sorted(self._zones.values(), key=lambda z: -z.priority))

    def by_id(self, zone_id: str) -> Zone | None:
        with self._lock:
            return self._zones.get(zone_id)

    def by_status(self, status: ZoneStatus) -> list[Zone]:
        with self._lock:
            return [z for z in self._zones.values() if z.status is status]

    def render_positions(self, zone_id: str) -> list[tuple[float, float]]:
        """The zone polygon in ``(lat, lon)`` render order.

        Raises:
            KeyError: If the zone is unknown.
        """
        with self._lock:
            zone = self._zones[zone_id]
        return render_ring(zone.geometry)

    def subscribe(self, observer: Callable[[tuple[Zone, ...]], None]) -> Callable[[], None]:
        """Register *observer*; returns a callable that unsubscribes."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def _notify(self) -> None:
        with self._lock:
            observers = list(self._observers)
        zones = self.zones()
        for observer in observers:
            observer(zones)
