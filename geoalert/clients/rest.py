"""REST client for the alert/zone/tile server.

One ``httpx.Client`` per ``ApiClient``, bearer-token authenticated.
Every call maps failures onto the package taxonomy:

- transport errors and 5xx / 429 → ``RemoteFailure(retryable=True)``
- other 4xx → ``RemoteFailure(retryable=False)``
- malformed bodies → ``PayloadContractError``

There is no internal retry; callers own their retry policy.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from geoalert.core.constants import (
    ALERT_STATS_PATH,
    ALERTS_PATH,
    TILE_CATALOG_PATH,
    TILE_SEARCH_PATH,
    ZONES_PATH,
    alert_action_path,
)
from geoalert.core.exceptions import PayloadContractError, RemoteFailure
from geoalert.models.validation import ModelValidationError
from geoalert.models.wire import (
    AlertEnvelope,
    AlertsEnvelope,
    StatsEnvelope,
    TilesEnvelope,
    ZonesEnvelope,
    parse_payload,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from geoalert.models.alert import Alert, AlertStats
    from geoalert.models.aoi import AreaOfInterest, BoundingBox
    from geoalert.models.tile import Tile
    from geoalert.models.zone import Zone

logger = logging.getLogger("geoalert.clients.rest")

T = TypeVar("T")

_RETRYABLE_STATUS = frozenset({429})


class ApiClient:
    """Synchronous client for the server's REST API.

    Args:
        base_url: Server root (e.g. ``"http://localhost:5000"``).
        token: Bearer token; may be set later with ``set_token``.
        timeout: Per-request timeout in seconds.
        transport: Custom httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.set_token(token)

    def set_token(self, token: str) -> None:
        if token:
            self._client.headers["Authorization"] = f"Bearer {token}"
        else:
            self._client.headers.pop("Authorization", None)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def list_alerts(self, **filters: str) -> list[Alert]:
        body = self._request("list_alerts", "GET", ALERTS_PATH, params=filters or None)
        envelope = parse_payload(AlertsEnvelope, body, "list_alerts")
        return _convert("list_alerts", lambda: [a.to_alert() for a in envelope.alerts])

    def alert_stats(self) -> AlertStats:
        """Server-side counts (the store derives its own; this is for display)."""
        body = self._request("alert_stats", "GET", ALERT_STATS_PATH)
        return parse_payload(StatsEnvelope, body, "alert_stats").stats.to_stats()

    def acknowledge_alert(self, alert_id: str) -> None:
        self._request("acknowledge_alert", "PUT", alert_action_path(alert_id, "acknowledge"))

    def resolve_alert(self, alert_id: str, resolution: str = "") -> None:
        self._request(
            "resolve_alert",
            "PUT",
            alert_action_path(alert_id, "resolve"),
            json={"resolution": resolution},
        )

    def create_alert(self, draft: Alert) -> Alert:
        """POST a new alert; the server assigns the final id."""
        payload = {
            "title": draft.title,
            "description": draft.description,
            "severity": draft.severity.value,
            "location": draft.to_dict()["location"],
        }
        body = self._request("create_alert", "POST", ALERTS_PATH, json=payload)
        envelope = parse_payload(AlertEnvelope, body, "create_alert")
        return _convert("create_alert", envelope.alert.to_alert)

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    def list_zones(self, limit: int | None = None) -> list[Zone]:
        params = {"limit": limit} if limit is not None else None
        body = self._request("list_zones", "GET", ZONES_PATH, params=params)
        envelope = parse_payload(ZonesEnvelope, body, "list_zones")
        return _convert("list_zones", lambda: [z.to_zone() for z in envelope.zones])

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------

    def list_tiles(self, satellite: str | None = None, date_range: str | None = None) -> list[Tile]:
        params = {
            k: v for k, v in (("satellite", satellite), ("dateRange", date_range)) if v
        }
        body = self._request("list_tiles", "GET", TILE_CATALOG_PATH, params=params or None)
        return _tiles("list_tiles", body)

    def search_tiles(
        self,
        aoi: AreaOfInterest,
        bbox: BoundingBox,
        satellite: str,
        date_range: str,
    ) -> list[Tile]:
        payload = {
            "geojson": aoi.to_geojson(),
            "bbox": bbox.to_dict(),
            "satellite": satellite,
            "dateRange": date_range,
        }
        body = self._request("search_tiles", "POST", TILE_SEARCH_PATH, json=payload)
        return _tiles("search_tiles", body)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise RemoteFailure(operation, msg, retryable=True) from exc

        if response.is_error:
            status = response.status_code
            retryable = status >= 500 or status in _RETRYABLE_STATUS
            logger.warning(
                "%s failed | status=%d | retryable=%s | path=%s",
                operation,
                status,
                retryable,
                path,
            )
            msg = f"{method} {path} returned HTTP {status}"
            raise RemoteFailure(operation, msg, status_code=status, retryable=retryable)

        logger.debug("%s ok | status=%d | path=%s", operation, response.status_code, path)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            msg = f"{operation}: response is not JSON"
            raise PayloadContractError(msg) from exc


def _tiles(operation: str, body: Any) -> list[Tile]:
    envelope = parse_payload(TilesEnvelope, body or {}, operation)
    return _convert(operation, lambda: [t.to_tile() for t in envelope.tiles])


def _convert(operation: str, build: Callable[[], T]) -> T:
    """Run a wire → domain conversion, surfacing model violations as contract errors."""
    try:
        return build()
    except ModelValidationError as exc:
        msg = f"{operation}: {exc}"
        raise PayloadContractError(msg) from exc
