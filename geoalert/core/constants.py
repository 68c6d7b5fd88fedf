"""Shared constants: single source of truth.

Centralises server URLs, REST paths, catalog source names, and the
notification channel keys used by ``NotificationGate``.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

DEFAULT_SERVER_URL: str = "http://localhost:5000"
"""Default REST and push-channel server for local development."""

DEFAULT_STAC_URL: str = "https://planetarycomputer.microsoft.com/api/stac/v1"
"""Default STAC API root for the ``planetary_computer`` tile catalog."""

ALERTS_PATH = "/api/alerts"
ALERT_STATS_PATH = "/api/alerts/stats/summary"
ZONES_PATH = "/api/map/zones"
TILE_CATALOG_PATH = "/api/satellite"
TILE_SEARCH_PATH = "/api/satellite/search-tiles"


def alert_action_path(alert_id: str, action: str) -> str:
    """Return the REST path for an alert mutation (``acknowledge`` / ``resolve``)."""
    return f"{ALERTS_PATH}/{alert_id}/{action}"


# ---------------------------------------------------------------------------
# Tile catalog sources
# ---------------------------------------------------------------------------

CATALOG_REST = "rest"
CATALOG_PLANETARY_COMPUTER = "planetary_computer"

# ---------------------------------------------------------------------------
# Notification channel keys
# ---------------------------------------------------------------------------

CHANNEL_ALERTS_FETCH = "alerts.fetch"
CHANNEL_ALERT_ACKNOWLEDGE = "alerts.acknowledge"
CHANNEL_ALERT_RESOLVE = "alerts.resolve"
CHANNEL_ALERT_CREATE = "alerts.create"
CHANNEL_ZONES_FETCH = "zones.fetch"
CHANNEL_AOI_INGEST = "aoi.ingest"
CHANNEL_TILE_SEARCH = "tiles.search"
CHANNEL_TILE_CATALOG = "tiles.catalog"
CHANNEL_SATELLITE_PROCESSING = "satellite.processing"
CHANNEL_PUSH_CONNECTION = "push.connection"
