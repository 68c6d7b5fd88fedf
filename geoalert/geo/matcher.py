"""GeoMatcher: one AOI analysis session.

Owns the current AOI and the tile annotations derived from it.
Replacing the AOI discards every prior annotation, and a search that
finishes after its AOI was replaced is dropped rather than installed.

Flow::

    ingest_aoi(document) → bounding_box → catalog.search
        → match_tiles → (empty?) synthesize_fallback → tiles
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

import numpy as np

from geoalert.core.constants import CHANNEL_AOI_INGEST, CHANNEL_TILE_CATALOG, CHANNEL_TILE_SEARCH
from geoalert.core.exceptions import InvalidGeometryError, PayloadContractError, RemoteFailure
from geoalert.geo import aoi as aoi_mod
from geoalert.geo import coverage, synthesis
from geoalert.geo.coords import normalize_coordinate_order
from geoalert.geo.templates import SATELLITE_FILTER_ALL, check_satellite_filter
from geoalert.sync.notification_gate import NotificationGate

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import date

    from geoalert.catalogs.base import TileCatalog
    from geoalert.models.aoi import AreaOfInterest, BoundingBox
    from geoalert.models.tile import Tile

logger = logging.getLogger("geoalert.geo.matcher")


class GeoMatcher:
    """AOI ingestion, tile matching and fallback synthesis for one session.

    Args:
        catalog: Tile source used by ``search_tiles``.
        gate: Failure notification gate.
        rng: Random generator for fallback synthesis (seed for reproducibility).
    """

    def __init__(
        self,
        catalog: TileCatalog | None = None,
        *,
        gate: NotificationGate | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._catalog = catalog
        self._gate = gate or NotificationGate()
        self._rng = rng if rng is not None else np.random.default_rng()
        self._lock = threading.Lock()
        self._aoi: AreaOfInterest | None = None
        self._bbox: BoundingBox | None = None
        self._tiles: tuple[Tile, ...] = ()
        self._generation = 0

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    @property
    def catalog(self) -> TileCatalog | None:
        return self._catalog

    @property
    def aoi(self) -> AreaOfInterest | None:
        with self._lock:
            return self._aoi

    @property
    def bbox(self) -> BoundingBox | None:
        with self._lock:
            return self._bbox

    @property
    def tiles(self) -> tuple[Tile, ...]:
        """Annotated tiles for the current AOI."""
        with self._lock:
            return self._tiles

    def clear(self) -> None:
        """Drop the AOI and all annotations."""
        with self._lock:
            self._aoi = None
            self._bbox = None
            self._tiles = ()
            self._generation += 1
        logger.info("AOI cleared")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def ingest_aoi(self, document: str | bytes | Mapping[str, Any], name: str = "aoi") -> AreaOfInterest:
        """Validate and install a new AOI, discarding prior annotations.

        Raises:
            InvalidGeometryError: If the document is malformed. The
                previous AOI stays installed.
        """
        try:
            aoi = aoi_mod.parse_aoi(document, name)
            bbox = aoi_mod.bounding_box(aoi)
        except InvalidGeometryError as exc:
            logger.warning("AOI rejected | name=%s | error=%s", name, exc)
            self._gate.report_once(CHANNEL_AOI_INGEST, f"Invalid AOI: {exc.message}")
            raise
        self._gate.report_success(CHANNEL_AOI_INGEST)
        with self._lock:
            self._aoi = aoi
            self._bbox = bbox
            self._tiles = ()
            self._generation += 1
        logger.info("AOI installed | name=%s | bbox=%s", name, bbox.bounds)
        return aoi

    def bounding_box(self, aoi: AreaOfInterest | None = None) -> BoundingBox:
        """Bounding box of *aoi* (default: the session AOI)."""
        return aoi_mod.bounding_box(aoi or self._require_aoi())

    @staticmethod
    def normalize_coordinate_order(point: Sequence[float]) -> tuple[float, float]:
        return normalize_coordinate_order(point)

    def match_tiles(self, catalog_tiles: Iterable[Tile], aoi: AreaOfInterest | None = None) -> list[Tile]:
        """Annotate *catalog_tiles* against *aoi* (default: the session AOI)."""
        return coverage.match_tiles(aoi or self._require_aoi(), catalog_tiles)

    def synthesize_fallback(
        self,
        satellite_filter: str = SATELLITE_FILTER_ALL,
        bbox: BoundingBox | None = None,
    ) -> list[Tile]:
        """Synthetic tiles inside *bbox* (default: the session AOI's box)."""
        return synthesis.synthesize_fallback(
            bbox or self.bounding_box(), satellite_filter, self._rng
        )

    def search_tiles(
        self,
        satellite_filter: str = SATELLITE_FILTER_ALL,
        date_range: str = "all",
        *,
        custom_date: date | None = None,
    ) -> list[Tile]:
        """Search the catalog for the session AOI and install the annotated result.

        An empty match is never an error: synthetic fallback tiles are
        installed instead.

        Raises:
            InvalidGeometryError: If no AOI is installed.
            ModelValidationError: If *satellite_filter* is unknown.
            RemoteFailure: If the catalog fails (reported once per episode).
        """
        if self._catalog is None:
            msg = "GeoMatcher has no TileCatalog; pass one to search tiles"
            raise RuntimeError(msg)
        check_satellite_filter(satellite_filter)
        with self._lock:
            if self._aoi is None or self._bbox is None:
                msg = "No AOI ingested"
                raise InvalidGeometryError(msg)
            aoi, bbox, generation = self._aoi, self._bbox, self._generation

        try:
            found = self._catalog.search(
                aoi, bbox, satellite_filter, date_range, custom_date=custom_date
            )
        except (RemoteFailure, PayloadContractError) as exc:
            logger.warning("Tile search failed | aoi=%s | error=%s", aoi.name, exc)
            self._gate.report_once(CHANNEL_TILE_SEARCH, "Failed to search for satellite tiles")
            raise
        self._gate.report_success(CHANNEL_TILE_SEARCH)

        tiles = coverage.match_tiles(aoi, found)
        if not tiles:
            logger.info("No catalog coverage | aoi=%s | falling back to synthetic tiles", aoi.name)
            tiles = synthesis.synthesize_fallback(bbox, satellite_filter, self._rng)

        with self._lock:
            if self._generation != generation:
                logger.info("Stale tile search dropped | aoi=%s", aoi.name)
                return tiles
            self._tiles = tuple(tiles)
        return tiles

    def list_catalog_tiles(
        self,
        satellite_filter: str = SATELLITE_FILTER_ALL,
        date_range: str = "all",
        *,
        custom_date: date | None = None,
    ) -> list[Tile]:
        """Recent catalog tiles without AOI annotation (the browse view).

        Raises:
            RemoteFailure: If the catalog fails (reported once per episode).
        """
        if self._catalog is None:
            msg = "GeoMatcher has no TileCatalog; pass one to list tiles"
            raise RuntimeError(msg)
        check_satellite_filter(satellite_filter)
        try:
            tiles = self._catalog.list_tiles(satellite_filter, date_range, custom_date=custom_date)
        except (RemoteFailure, PayloadContractError) as exc:
            logger.warning("Tile listing failed | error=%s", exc)
            self._gate.report_once(CHANNEL_TILE_CATALOG, "Failed to load satellite tiles")
            raise
        self._gate.report_success(CHANNEL_TILE_CATALOG)
        return tiles

    def render_positions(self) -> list[tuple[float, float]]:
        """Current tile centres in ``(lat, lon)`` render order."""
        return [normalize_coordinate_order(tile.geometry) for tile in self.tiles]

    def _require_aoi(self) -> AreaOfInterest:
        with self._lock:
            if self._aoi is None:
                msg = "No AOI ingested"
                raise InvalidGeometryError(msg)
            return self._aoi
