"""Tile catalog over a STAC API (Microsoft Planetary Computer by default).

Maps each supported platform to a STAC collection and ``platform``
property value, searches with ``pystac-client`` and converts items into
``Tile`` centre points.

STAC items carry no analysis confidence; the catalog scores a scene by
how clear it is: ``confidence = 1 - cloud_cover / 100``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pystac_client
from shapely.geometry import shape

from geoalert.catalogs.base import TileCatalog
from geoalert.core.constants import CATALOG_PLANETARY_COMPUTER, DEFAULT_STAC_URL
from geoalert.core.exceptions import CatalogError
from geoalert.geo.filters import date_window
from geoalert.geo.templates import SATELLITE_FILTER_ALL, TEMPLATES, check_satellite_filter
from geoalert.models.tile import Tile, TileMetadata

if TYPE_CHECKING:
    from datetime import date

    import pystac

    from geoalert.clients.rest import ApiClient
    from geoalert.core.config import GeoAlertConfig
    from geoalert.models.aoi import AreaOfInterest, BoundingBox

logger = logging.getLogger("geoalert.catalogs.stac")

_MAX_ITEMS = 50
_WORLD_BBOX = (-180.0, -90.0, 180.0, 90.0)


@dataclass(frozen=True, slots=True)
class StacSource:
    """Where a platform's scenes live in the STAC catalog."""

    collection: str
    platform: str


STAC_SOURCES: dict[str, StacSource] = {
    "Landsat-8": StacSource(collection="landsat-c2-l2", platform="landsat-8"),
    "Sentinel-1A": StacSource(collection="sentinel-1-grd", platform="SENTINEL-1A"),
    "Sentinel-2A": StacSource(collection="sentinel-2-l2a", platform="Sentinel-2A"),
}

_PLATFORM_NAMES = {source.platform.lower(): name for name, source in STAC_SOURCES.items()}


class StacTileCatalog(TileCatalog):
    """STAC-backed tile catalog.

    Args:
        stac_url: STAC API root.
    """

    name = CATALOG_PLANETARY_COMPUTER

    def __init__(self, stac_url: str = DEFAULT_STAC_URL) -> None:
        self._stac_url = stac_url

    @classmethod
    def from_config(cls, config: GeoAlertConfig, api: ApiClient | None = None) -> StacTileCatalog:
        return cls(config.stac_url)

    def search(
        self,
        aoi: AreaOfInterest,
        bbox: BoundingBox,
        satellite_filter: str,
        date_range: str,
        *,
        custom_date: date | None = None,
    ) -> list[Tile]:
        return self._search(bbox.bounds, satellite_filter, date_range, custom_date, aoi.name)

    def list_tiles(
        self,
        satellite_filter: str,
        date_range: str,
        *,
        custom_date: date | None = None,
    ) -> list[Tile]:
        return self._search(_WORLD_BBOX, satellite_filter, date_range, custom_date, "")

    # ------------------------------------------------------------------
    # STAC search
    # ------------------------------------------------------------------

    def _search(
        self,
        bounds: tuple[float, float, float, float],
        satellite_filter: str,
        date_range: str,
        custom_date: date | None,
        aoi_name: str,
    ) -> list[Tile]:
        check_satellite_filter(satellite_filter)
        if satellite_filter == SATELLITE_FILTER_ALL:
            collections = [source.collection for source in STAC_SOURCES.values()]
            query = None
        else:
            source = STAC_SOURCES[satellite_filter]
            collections = [source.collection]
            query = {"platform": {"eq": source.platform}}
        datetime_range = _stac_datetime(date_range, custom_date)

        try:
            catalogue = pystac_client.Client.open(self._stac_url)
            stac_search = catalogue.search(
                bbox=list(bounds),
                collections=collections,
                datetime=datetime_range,
                query=query,
                max_items=_MAX_ITEMS,
            )
            items = list(stac_search.items())
        except Exception as exc:
            msg = f"STAC search failed: {exc}"
            raise CatalogError("stac_search", msg, retryable=True) from exc

        tiles = _items_to_tiles(items)
        logger.info(
            "STAC tile search | aoi=%s | collections=%s | datetime=%s | items=%d | tiles=%d",
            aoi_name,
            collections,
            datetime_range,
            len(items),
            len(tiles),
        )
        return tiles


# ---------------------------------------------------------------------------
# Item conversion
# ---------------------------------------------------------------------------


def _items_to_tiles(items: list[pystac.Item]) -> list[Tile]:
    tiles: list[Tile] = []
    for item in items:
        try:
            tile = _item_to_tile(item)
        except ValueError as exc:
            logger.debug("STAC item skipped (invalid) | id=%s | error=%s", item.id, exc)
            continue
        if tile is not None:
            tiles.append(tile)
    return tiles


def _item_to_tile(item: pystac.Item) -> Tile | None:
    """Convert a STAC item into a ``Tile``; ``None`` for unusable items."""
    props: dict[str, Any] = item.properties or {}
    centre = _item_centre(item)
    if centre is None:
        logger.debug("STAC item skipped (no geometry) | id=%s", item.id)
        return None

    platform = str(props.get("platform", ""))
    satellite_name = _PLATFORM_NAMES.get(platform.lower(), platform or item.collection_id or "")
    if not satellite_name:
        logger.debug("STAC item skipped (no platform) | id=%s", item.id)
        return None
    template = TEMPLATES.get(satellite_name)

    cloud = min(max(float(props.get("eo:cloud_cover") or 0.0), 0.0), 100.0)
    gsd = props.get("gsd")
    resolution = template.resolution if template else (f"{float(gsd):g}m" if gsd else "")

    return Tile(
        id=item.id,
        satellite_name=satellite_name,
        acquisition_date=item.datetime or datetime.now(UTC),
        geometry=centre,
        confidence_score=round(1.0 - cloud / 100.0, 3),
        metadata=TileMetadata(
            resolution=resolution,
            cloud_coverage=cloud,
            tile_id=item.id,
            path_row=_path_row(props),
            sun_elevation=float(props.get("view:sun_elevation") or 0.0),
        ),
        data_type=template.data_type if template else "",
    )


def _item_centre(item: pystac.Item) -> tuple[float, float] | None:
    if item.bbox and len(item.bbox) in (4, 6):
        # 3-D boxes are [minx, miny, minz, maxx, maxy, maxz].
        half = len(item.bbox) // 2
        min_lon, min_lat = item.bbox[0], item.bbox[1]
        max_lon, max_lat = item.bbox[half], item.bbox[half + 1]
        return ((min_lon + max_lon) / 2, (min_lat + max_lat) / 2)
    if item.geometry:
        centroid = shape(item.geometry).centroid
        return (centroid.x, centroid.y)
    return None


def _path_row(props: dict[str, Any]) -> str:
    if "landsat:wrs_path" in props and "landsat:wrs_row" in props:
        return f"{props['landsat:wrs_path']}_{props['landsat:wrs_row']}"
    if "s2:mgrs_tile" in props:
        return str(props["s2:mgrs_tile"])
    if "sat:relative_orbit" in props:
        return str(props["sat:relative_orbit"])
    return ""


def _stac_datetime(date_range: str, custom_date: date | None) -> str | None:
    """STAC ``datetime`` interval for a date preset (``None`` = unbounded)."""
    window = date_window(date_range, custom_date=custom_date)
    if window is None:
        return None
    start, end = window
    end_text = end.strftime("%Y-%m-%dT%H:%M:%SZ") if end else ".."
    return f"{start.strftime('%Y-%m-%dT%H:%M:%SZ')}/{end_text}"
