"""Tile coverage scoring against an AOI.

Each tile is a centre point; its nominal footprint is a square of the
platform's footprint edge (``geo.templates``) centred on that point.
Coverage is the share of that footprint falling inside the AOI bounding
box, with areas on an equirectangular approximation::

    area ≈ Δlon · Δlat · cos(mid_lat)        (square degrees)

Both areas share the same scale so the ratio is unitless. Scores are
deterministic for a given tile and AOI.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import TYPE_CHECKING

from shapely.geometry import box

from geoalert.geo.aoi import bounding_box
from geoalert.geo.templates import KM_PER_DEGREE, footprint_km

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shapely.geometry.base import BaseGeometry

    from geoalert.models.aoi import AreaOfInterest, BoundingBox
    from geoalert.models.tile import Tile

logger = logging.getLogger("geoalert.geo.coverage")

# cos(lat) floor so footprints near the poles stay finite.
_MIN_COS_LAT = 1e-6


def nominal_footprint(tile: Tile) -> BaseGeometry:
    """Square footprint around the tile centre, in degrees."""
    lon, lat = tile.geometry
    half_lat = footprint_km(tile.satellite_name) / 2 / KM_PER_DEGREE
    half_lon = half_lat / max(math.cos(math.radians(lat)), _MIN_COS_LAT)
    return box(lon - half_lon, lat - half_lat, lon + half_lon, lat + half_lat)


def equirectangular_area(geometry: BaseGeometry) -> float:
    """Approximate area of an axis-aligned rectangle in cos-scaled square degrees."""
    if geometry.is_empty:
        return 0.0
    min_lon, min_lat, max_lon, max_lat = geometry.bounds
    mid_lat = (min_lat + max_lat) / 2
    return (max_lon - min_lon) * (max_lat - min_lat) * math.cos(math.radians(mid_lat))


def coverage_percentage(tile: Tile, bbox: BoundingBox) -> float:
    """Percentage of *tile*'s footprint inside *bbox*, clamped to [0, 100]."""
    footprint = nominal_footprint(tile)
    footprint_area = equirectangular_area(footprint)
    if footprint_area <= 0:
        return 0.0
    overlap = footprint.intersection(box(*bbox.bounds))
    pct = equirectangular_area(overlap) / footprint_area * 100
    return min(max(pct, 0.0), 100.0)


def match_tiles(aoi: AreaOfInterest, catalog: Iterable[Tile]) -> list[Tile]:
    """Annotate catalog tiles against *aoi*; drop tiles with no overlap.

    Returned tiles are copies with ``aoi_covered=True`` and
    ``coverage_percentage`` set (rounded to 2 decimals). A tile whose
    rounded coverage is 0 counts as no overlap. Input tiles are not
    modified.
    """
    bbox = bounding_box(aoi)
    matched: list[Tile] = []
    seen = 0
    for tile in catalog:
        seen += 1
        pct = round(coverage_percentage(tile, bbox), 2)
        if pct <= 0:
            continue
        matched.append(replace(tile, aoi_covered=True, coverage_percentage=pct))
    logger.info(
        "Tiles matched | aoi=%s | catalog=%d | matched=%d",
        aoi.name,
        seen,
        len(matched),
    )
    return matched
