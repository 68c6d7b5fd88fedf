"""Tests for (lon, lat) → (lat, lon) conversion at the rendering boundary."""

from __future__ import annotations

import pytest

from geoalert.geo.coords import normalize_coordinate_order, render_ring


class TestNormalizeCoordinateOrder:
    def test_swaps_to_lat_lon(self) -> None:
        assert normalize_coordinate_order([-77.04, 38.88]) == (38.88, -77.04)

    def test_applying_twice_swaps_back(self) -> None:
        point = (-77.04, 38.88)
        assert normalize_coordinate_order(normalize_coordinate_order(point)) == point

    def test_input_unchanged(self) -> None:
        point = [-77.04, 38.88]
        normalize_coordinate_order(point)
        assert point == [-77.04, 38.88]

    @pytest.mark.parametrize("point", [[], [1.0], [1.0, 2.0, 3.0]])
    def test_rejects_non_pairs(self, point: list[float]) -> None:
        with pytest.raises(ValueError):
            normalize_coordinate_order(point)


class TestRenderRing:
    def test_every_vertex_swapped(self) -> None:
        ring = [(0.0, 1.0), (2.0, 3.0)]
        assert render_ring(ring) == [(1.0, 0.0), (3.0, 2.0)]
