"""Tile catalog sources (REST server, STAC API) behind one interface."""

from geoalert.catalogs.base import TileCatalog
from geoalert.catalogs.factory import get_catalog, list_catalogs, register_catalog

__all__ = ["TileCatalog", "get_catalog", "list_catalogs", "register_catalog"]
