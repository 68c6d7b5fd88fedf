"""Catalog factory: selects the tile catalog by name.

Usage::

    from geoalert.catalogs.factory import get_catalog

    catalog = get_catalog(config.tile_catalog, config, api=api)
    tiles = catalog.search(aoi, bbox, "all", "week")

Each registry entry is a lazy import thunk so pystac-client is only
loaded when the STAC catalog is selected.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geoalert.core.constants import CATALOG_PLANETARY_COMPUTER, CATALOG_REST

if TYPE_CHECKING:
    from collections.abc import Callable

    from geoalert.catalogs.base import TileCatalog
    from geoalert.clients.rest import ApiClient
    from geoalert.core.config import GeoAlertConfig

logger = logging.getLogger("geoalert.catalogs.factory")

_CATALOG_REGISTRY: dict[str, Callable[[], type[TileCatalog]]] = {}


def _register_builtin_catalogs() -> None:
    def _rest() -> type[TileCatalog]:
        from geoalert.catalogs.rest import RestTileCatalog

        return RestTileCatalog

    def _stac() -> type[TileCatalog]:
        from geoalert.catalogs.stac import StacTileCatalog

        return StacTileCatalog

    _CATALOG_REGISTRY[CATALOG_REST] = _rest
    _CATALOG_REGISTRY[CATALOG_PLANETARY_COMPUTER] = _stac


def _ensure_registry() -> None:
    if not _CATALOG_REGISTRY:
        _register_builtin_catalogs()


def register_catalog(name: str, loader: Callable[[], type[TileCatalog]]) -> None:
    """Register a custom catalog (tests, third-party sources).

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Catalog name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _CATALOG_REGISTRY[name] = loader
    logger.debug("Registered tile catalog: %s", name)


def get_catalog(
    name: str,
    config: GeoAlertConfig,
    *,
    api: ApiClient | None = None,
) -> TileCatalog:
    """Create the named tile catalog.

    Raises:
        ValueError: If *name* is not registered.
    """
    _ensure_registry()
    loader = _CATALOG_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_CATALOG_REGISTRY))
        msg = f"Unknown tile catalog: {name!r}. Available: {available}"
        raise ValueError(msg)
    logger.info("Creating tile catalog: %s", name)
    return loader().from_config(config, api)


def list_catalogs() -> list[str]:
    _ensure_registry()
    return sorted(_CATALOG_REGISTRY)
