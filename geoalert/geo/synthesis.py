"""Synthetic fallback tiles.

Used only when a tile search matches nothing, so the AOI view is never
empty. Synthetic tiles carry ``source=TileSource.SYNTHETIC`` and a
``synthetic_`` id prefix.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import numpy as np

from geoalert.geo.templates import (
    ALL_FILTER_CHOICES,
    SATELLITE_FILTER_ALL,
    TEMPLATES,
    check_satellite_filter,
)
from geoalert.models.tile import Tile, TileMetadata, TileSource

if TYPE_CHECKING:
    from geoalert.geo.templates import SatelliteTemplate
    from geoalert.models.aoi import BoundingBox

logger = logging.getLogger("geoalert.geo.synthesis")

SYNTHETIC_ID_PREFIX = "synthetic_"
MIN_SYNTHETIC_TILES = 1
MAX_SYNTHETIC_TILES = 3
CONFIDENCE_RANGE = (0.7, 1.0)
COVERAGE_RANGE = (60.0, 100.0)
MAX_PATH_ROW = 200


def synthesize_fallback(
    bbox: BoundingBox,
    satellite_filter: str = SATELLITE_FILTER_ALL,
    rng: np.random.Generator | None = None,
    *,
    now: datetime | None = None,
) -> list[Tile]:
    """Generate 1-3 synthetic tiles with centres uniformly inside *bbox*.

    Args:
        bbox: AOI bounding box; sampled points lie within it, inclusive.
        satellite_filter: ``"all"`` or a platform name from ``TEMPLATES``.
        rng: Random generator (seed it for reproducible output).
        now: Acquisition timestamp (defaults to the current UTC time).

    Raises:
        ModelValidationError: If *satellite_filter* is unknown.
    """
    check_satellite_filter(satellite_filter)
    rng = rng if rng is not None else np.random.default_rng()
    stamp = now or datetime.now(UTC)
    count = int(rng.integers(MIN_SYNTHETIC_TILES, MAX_SYNTHETIC_TILES + 1))

    tiles = []
    for index in range(count):
        if satellite_filter == SATELLITE_FILTER_ALL:
            template = ALL_FILTER_CHOICES[int(rng.integers(len(ALL_FILTER_CHOICES)))]
        else:
            template = TEMPLATES[satellite_filter]
        tiles.append(_synthetic_tile(bbox, template, rng, stamp, index))

    logger.info(
        "Fallback tiles synthesized | filter=%s | count=%d | bbox=%s",
        satellite_filter,
        count,
        bbox.bounds,
    )
    return tiles


def _synthetic_tile(
    bbox: BoundingBox,
    template: SatelliteTemplate,
    rng: np.random.Generator,
    stamp: datetime,
    index: int,
) -> Tile:
    lon = _clamp(float(rng.uniform(bbox.min_lon, bbox.max_lon)), bbox.min_lon, bbox.max_lon)
    lat = _clamp(float(rng.uniform(bbox.min_lat, bbox.max_lat)), bbox.min_lat, bbox.max_lat)
    path, row = rng.integers(1, MAX_PATH_ROW + 1, size=2)

    metadata = TileMetadata(
        resolution=template.resolution,
        cloud_coverage=round(float(rng.uniform(*template.cloud_range)), 2),
        tile_id=f"{template.tile_prefix}_{stamp:%Y%m%d}_{index}",
        path_row=f"{int(path):03d}_{int(row):03d}",
        sun_elevation=round(float(rng.uniform(*template.sun_elevation_range)), 2),
    )
    return Tile(
        id=f"{SYNTHETIC_ID_PREFIX}{stamp:%Y%m%d%H%M%S}_{index}",
        satellite_name=template.name,
        acquisition_date=stamp,
        geometry=(lon, lat),
        confidence_score=round(float(rng.uniform(*CONFIDENCE_RANGE)), 3),
        metadata=metadata,
        data_type=template.data_type,
        aoi_covered=True,
        coverage_percentage=round(float(rng.uniform(*COVERAGE_RANGE)), 2),
        source=TileSource.SYNTHETIC,
    )


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)
