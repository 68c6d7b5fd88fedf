"""Tile catalog backed by the application server's tile endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geoalert.catalogs.base import TileCatalog
from geoalert.core.constants import CATALOG_REST
from geoalert.core.exceptions import CatalogError, RemoteFailure
from geoalert.geo.templates import SATELLITE_FILTER_ALL

if TYPE_CHECKING:
    from datetime import date

    from geoalert.clients.rest import ApiClient
    from geoalert.core.config import GeoAlertConfig
    from geoalert.models.aoi import AreaOfInterest, BoundingBox
    from geoalert.models.tile import Tile

logger = logging.getLogger("geoalert.catalogs.rest")


class RestTileCatalog(TileCatalog):
    """Delegates to ``POST /api/satellite/search-tiles`` and ``GET /api/satellite``.

    The server applies the satellite and date filters itself;
    ``custom_date`` is accepted for interface parity and ignored.
    """

    name = CATALOG_REST

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    @classmethod
    def from_config(cls, config: GeoAlertConfig, api: ApiClient | None = None) -> RestTileCatalog:
        if api is None:
            msg = "RestTileCatalog requires an ApiClient"
            raise ValueError(msg)
        return cls(api)

    def search(
        self,
        aoi: AreaOfInterest,
        bbox: BoundingBox,
        satellite_filter: str,
        date_range: str,
        *,
        custom_date: date | None = None,
    ) -> list[Tile]:
        try:
            tiles = self._api.search_tiles(aoi, bbox, satellite_filter, date_range)
        except RemoteFailure as exc:
            raise CatalogError(
                "search_tiles", exc.message, status_code=exc.status_code, retryable=exc.retryable
            ) from exc
        logger.info(
            "REST tile search | aoi=%s | satellite=%s | dateRange=%s | tiles=%d",
            aoi.name,
            satellite_filter,
            date_range,
            len(tiles),
        )
        return tiles

    def list_tiles(
        self,
        satellite_filter: str,
        date_range: str,
        *,
        custom_date: date | None = None,
    ) -> list[Tile]:
        satellite = None if satellite_filter == SATELLITE_FILTER_ALL else satellite_filter
        try:
            return self._api.list_tiles(satellite=satellite, date_range=date_range)
        except RemoteFailure as exc:
            raise CatalogError(
                "list_tiles", exc.message, status_code=exc.status_code, retryable=exc.retryable
            ) from exc
