"""Tests for the tile catalogs and the catalog factory.

The STAC tests mock ``pystac_client.Client`` to avoid real network
calls; the REST catalog is exercised against a mocked ``ApiClient``.
"""

from __future__ import annotations

import unittest
from datetime import UTC, date, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from geoalert.catalogs.base import TileCatalog
from geoalert.catalogs.factory import get_catalog, list_catalogs, register_catalog
from geoalert.catalogs.rest import RestTileCatalog
from geoalert.catalogs.stac import STAC_SOURCES, StacTileCatalog, _stac_datetime
from geoalert.core.config import GeoAlertConfig
from geoalert.core.exceptions import CatalogError, RemoteFailure
from geoalert.geo.aoi import bounding_box, parse_aoi
from geoalert.models.validation import ModelValidationError
from tests.conftest import NOW, SQUARE_RING

_AOI = parse_aoi({"type": "Polygon", "coordinates": [SQUARE_RING]}, "potomac")
_BBOX = bounding_box(_AOI)


def _make_stac_item(
    item_id: str = "LC08_L2SP_015033_20260301",
    platform: str = "landsat-8",
    cloud_cover: float = 12.0,
    bbox: list[float] | None = None,
    geometry: dict[str, Any] | None = None,
    collection_id: str = "landsat-c2-l2",
    **extra: Any,
) -> Any:
    """Create a fake STAC item for testing."""
    properties = {
        "platform": platform,
        "eo:cloud_cover": cloud_cover,
        "view:sun_elevation": 48.5,
        **extra,
    }
    return SimpleNamespace(
        id=item_id,
        properties=properties,
        bbox=bbox if bbox is not None else [-77.2, 38.7, -76.9, 39.0],
        geometry=geometry,
        datetime=NOW,
        collection_id=collection_id,
    )


def _mock_stac_search(items: list[Any]) -> MagicMock:
    """Create a mock pystac_client.Client whose search always returns *items*."""
    mock_client = MagicMock()

    def _make_search(*_args: Any, **_kwargs: Any) -> MagicMock:
        mock_search = MagicMock()
        mock_search.items.return_value = iter(list(items))
        return mock_search

    mock_client.search.side_effect = _make_search
    return mock_client


class TestStacTileCatalog(unittest.TestCase):
    """StacTileCatalog search and item conversion."""

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_search_converts_items(self, mock_open: MagicMock) -> None:
        mock_open.return_value = _mock_stac_search(
            [_make_stac_item(**{"landsat:wrs_path": "015", "landsat:wrs_row": "033"})]
        )
        tiles = StacTileCatalog("https://stac.test").search(_AOI, _BBOX, "all", "all")
        assert len(tiles) == 1
        tile = tiles[0]
        assert tile.satellite_name == "Landsat-8"
        assert tile.geometry == pytest.approx((-77.05, 38.85))
        assert tile.confidence_score == pytest.approx(0.88)
        assert tile.metadata.resolution == "30m"
        assert tile.metadata.path_row == "015_033"
        assert tile.aoi_covered is False
        mock_open.assert_called_once_with("https://stac.test")

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_search_arguments_for_platform(self, mock_open: MagicMock) -> None:
        client = _mock_stac_search([])
        mock_open.return_value = client
        StacTileCatalog().search(_AOI, _BBOX, "Sentinel-2A", "all")
        kwargs = client.search.call_args.kwargs
        assert kwargs["bbox"] == [-77.1, 38.8, -77.0, 38.9]
        assert kwargs["collections"] == [STAC_SOURCES["Sentinel-2A"].collection]
        assert kwargs["query"] == {"platform": {"eq": "Sentinel-2A"}}
        assert kwargs["datetime"] is None

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_all_filter_searches_every_collection(self, mock_open: MagicMock) -> None:
        client = _mock_stac_search([])
        mock_open.return_value = client
        StacTileCatalog().search(_AOI, _BBOX, "all", "week")
        kwargs = client.search.call_args.kwargs
        assert set(kwargs["collections"]) == {s.collection for s in STAC_SOURCES.values()}
        assert kwargs["query"] is None
        assert kwargs["datetime"].endswith("/..")

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_geometry_centroid_fallback(self, mock_open: MagicMock) -> None:
        polygon = {
            "type": "Polygon",
            "coordinates": [[[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0], [0.0, 0.0]]],
        }
        item = _make_stac_item(bbox=[], geometry=polygon, platform="Sentinel-2A", **{"s2:mgrs_tile": "18SUJ"})
        mock_open.return_value = _mock_stac_search([item])
        tile = StacTileCatalog().search(_AOI, _BBOX, "all", "all")[0]
        assert tile.geometry == pytest.approx((1.0, 1.0))
        assert tile.metadata.path_row == "18SUJ"

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_three_dimensional_bbox(self, mock_open: MagicMock) -> None:
        item = _make_stac_item(bbox=[0.0, 0.0, -10.0, 2.0, 4.0, 10.0])
        mock_open.return_value = _mock_stac_search([item])
        tile = StacTileCatalog().search(_AOI, _BBOX, "all", "all")[0]
        assert tile.geometry == pytest.approx((1.0, 2.0))

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_unusable_items_skipped(self, mock_open: MagicMock) -> None:
        no_geometry = _make_stac_item("NO_GEOM", bbox=[], geometry=None)
        no_platform = _make_stac_item("NO_PLATFORM", platform="", collection_id="")
        mock_open.return_value = _mock_stac_search([no_geometry, no_platform])
        assert StacTileCatalog().search(_AOI, _BBOX, "all", "all") == []

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_invalid_items_skipped(self, mock_open: MagicMock) -> None:
        off_globe = _make_stac_item("OFF_GLOBE", bbox=[0.0, 95.0, 1.0, 96.0])
        bad_cloud = _make_stac_item("BAD_CLOUD", cloud_cover="n/a")
        good = _make_stac_item("GOOD")
        mock_open.return_value = _mock_stac_search([off_globe, bad_cloud, good])
        tiles = StacTileCatalog().list_tiles("all", "all")
        assert [t.id for t in tiles] == ["GOOD"]

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_failure_wrapped(self, mock_open: MagicMock) -> None:
        mock_open.side_effect = ConnectionError("DNS failure")
        with self.assertRaises(CatalogError) as ctx:
            StacTileCatalog().search(_AOI, _BBOX, "all", "all")
        assert ctx.exception.operation == "stac_search"
        assert ctx.exception.retryable is True

    def test_unknown_filter_rejected(self) -> None:
        with self.assertRaises(ModelValidationError):
            StacTileCatalog().search(_AOI, _BBOX, "Landsat-9", "all")

    @patch("geoalert.catalogs.stac.pystac_client.Client.open")
    def test_list_tiles_uses_world_bbox(self, mock_open: MagicMock) -> None:
        client = _mock_stac_search([])
        mock_open.return_value = client
        StacTileCatalog().list_tiles("all", "all")
        assert client.search.call_args.kwargs["bbox"] == [-180.0, -90.0, 180.0, 90.0]


class TestStacDatetime:
    def test_all_is_unbounded(self) -> None:
        assert _stac_datetime("all", None) is None

    def test_custom_is_closed_interval(self) -> None:
        assert _stac_datetime("custom", date(2026, 2, 14)) == "2026-02-14T00:00:00Z/2026-02-14T23:59:59Z"

    def test_today_is_open_ended(self) -> None:
        today = datetime.now(UTC).date().isoformat()
        assert _stac_datetime("today", None) == f"{today}T00:00:00Z/.."


class TestRestTileCatalog:
    def test_search_delegates(self) -> None:
        api = MagicMock()
        api.search_tiles.return_value = []
        catalog = RestTileCatalog(api)
        assert catalog.search(_AOI, _BBOX, "Landsat-8", "week") == []
        api.search_tiles.assert_called_once_with(_AOI, _BBOX, "Landsat-8", "week")

    def test_search_failure_wrapped(self) -> None:
        api = MagicMock()
        api.search_tiles.side_effect = RemoteFailure("search_tiles", "HTTP 502", status_code=502)
        with pytest.raises(CatalogError) as exc_info:
            RestTileCatalog(api).search(_AOI, _BBOX, "all", "all")
        assert exc_info.value.status_code == 502
        assert isinstance(exc_info.value.__cause__, RemoteFailure)

    def test_list_tiles_all_means_no_filter(self) -> None:
        api = MagicMock()
        api.list_tiles.return_value = []
        RestTileCatalog(api).list_tiles("all", "month")
        api.list_tiles.assert_called_once_with(satellite=None, date_range="month")

    def test_list_tiles_failure_wrapped(self) -> None:
        api = MagicMock()
        api.list_tiles.side_effect = RemoteFailure("list_tiles", "timeout")
        with pytest.raises(CatalogError):
            RestTileCatalog(api).list_tiles("Landsat-8", "all")

    def test_from_config_requires_api(self) -> None:
        with pytest.raises(ValueError):
            RestTileCatalog.from_config(GeoAlertConfig())


class TestCatalogFactory:
    def test_builtin_names(self) -> None:
        assert {"rest", "planetary_computer"} <= set(list_catalogs())

    def test_get_rest(self) -> None:
        catalog = get_catalog("rest", GeoAlertConfig(), api=MagicMock())
        assert isinstance(catalog, RestTileCatalog)

    def test_get_stac(self) -> None:
        config = GeoAlertConfig(tile_catalog="planetary_computer", stac_url="https://stac.test")
        catalog = get_catalog("planetary_computer", config)
        assert isinstance(catalog, StacTileCatalog)

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown tile catalog"):
            get_catalog("sentinel_hub", GeoAlertConfig())

    def test_register_custom(self) -> None:
        class _Static(TileCatalog):
            name = "static"

            @classmethod
            def from_config(cls, config: GeoAlertConfig, api: Any = None) -> _Static:
                return cls()

            def search(self, *_args: Any, **_kwargs: Any) -> list[Any]:
                return []

            def list_tiles(self, *_args: Any, **_kwargs: Any) -> list[Any]:
                return []

        register_catalog("static", lambda: _Static)
        assert isinstance(get_catalog("static", GeoAlertConfig()), _Static)
        assert "static" in list_catalogs()

    def test_register_empty_name(self) -> None:
        with pytest.raises(ValueError):
            register_catalog("", lambda: StacTileCatalog)
