"""TileCatalog abstract base class.

A tile catalog is a read-only source of satellite tiles. ``GeoMatcher``
only ever talks to this interface; which backend is behind it is a
configuration choice (``TILE_CATALOG``).

Concrete catalogs:
- ``RestTileCatalog``: the application server's tile endpoints.
- ``StacTileCatalog``: a STAC API (Microsoft Planetary Computer).
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date

    from geoalert.clients.rest import ApiClient
    from geoalert.core.config import GeoAlertConfig
    from geoalert.models.aoi import AreaOfInterest, BoundingBox
    from geoalert.models.tile import Tile


class TileCatalog(abc.ABC):
    """Abstract tile source.

    Tiles returned by a catalog have ``aoi_covered=False`` and
    ``coverage_percentage=0``; annotation is ``GeoMatcher``'s job.
    """

    #: Registry name of the catalog (``"rest"``, ``"planetary_computer"``).
    name: str = ""

    @classmethod
    @abc.abstractmethod
    def from_config(cls, config: GeoAlertConfig, api: ApiClient | None = None) -> TileCatalog:
        """Build the catalog from client configuration."""

    @abc.abstractmethod
    def search(
        self,
        aoi: AreaOfInterest,
        bbox: BoundingBox,
        satellite_filter: str,
        date_range: str,
        *,
        custom_date: date | None = None,
    ) -> list[Tile]:
        """Find tiles for an AOI.

        Raises:
            CatalogError: If the backend fails.
            PayloadContractError: If the backend answers with a bad shape.
        """

    @abc.abstractmethod
    def list_tiles(
        self,
        satellite_filter: str,
        date_range: str,
        *,
        custom_date: date | None = None,
    ) -> list[Tile]:
        """List recent tiles without an AOI.

        Raises:
            CatalogError: If the backend fails.
        """
