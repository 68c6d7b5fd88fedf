"""Typed models for satellite tiles.

A ``Tile`` is one discrete imagery footprint, represented by its centre
point in ``(lon, lat)`` storage order. ``aoi_covered`` and
``coverage_percentage`` are derived by ``GeoMatcher`` against the active
AOI; catalog tiles arrive with both unset.

Design notes:
- All models are frozen dataclasses; annotation returns a copy.
- ``source`` tags synthetic fallback tiles so consumers can tell them
  apart from catalog-sourced tiles.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from geoalert.models.validation import check_non_empty, check_point, check_range

if TYPE_CHECKING:
    from datetime import datetime


class TileSource(enum.Enum):
    """Where a tile came from."""

    CATALOG = "catalog"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True, slots=True)
class TileMetadata:
    """Acquisition metadata for a tile.

    Attributes:
        resolution: Ground sample distance label (e.g. ``"30m"``).
        cloud_coverage: Cloud cover percentage (0-100).
        tile_id: Provider scene/tile identifier.
        path_row: WRS path/row or equivalent grid reference.
        sun_elevation: Sun elevation in degrees.
    """

    resolution: str = ""
    cloud_coverage: float = 0.0
    tile_id: str = ""
    path_row: str = ""
    sun_elevation: float = 0.0

    def __post_init__(self) -> None:
        check_range("TileMetadata", "cloud_coverage", self.cloud_coverage, 0, 100)

    def to_dict(self) -> dict[str, object]:
        return {
            "resolution": self.resolution,
            "cloud_coverage": self.cloud_coverage,
            "tile_id": self.tile_id,
            "path_row": self.path_row,
            "sun_elevation": self.sun_elevation,
        }


@dataclass(frozen=True, slots=True)
class Tile:
    """A satellite imagery tile.

    Attributes:
        id: Unique identifier.
        satellite_name: Platform name (e.g. ``"Landsat-8"``).
        acquisition_date: Capture timestamp.
        geometry: Tile centre as ``(lon, lat)``.
        confidence_score: Analysis confidence (0-1).
        metadata: Acquisition metadata.
        data_type: Product type (``"multispectral"``, ``"optical"``, ...).
        aoi_covered: Whether the tile overlaps the active AOI.
        coverage_percentage: Share of the tile footprint inside the AOI (0-100).
        source: ``CATALOG`` or ``SYNTHETIC``.
    """

    id: str
    satellite_name: str
    acquisition_date: datetime
    geometry: tuple[float, float]
    confidence_score: float = 0.0
    metadata: TileMetadata = field(default_factory=TileMetadata)
    data_type: str = ""
    aoi_covered: bool = False
    coverage_percentage: float = 0.0
    source: TileSource = TileSource.CATALOG

    def __post_init__(self) -> None:
        check_non_empty("Tile", "id", self.id)
        check_non_empty("Tile", "satellite_name", self.satellite_name)
        check_point("Tile", "geometry", self.geometry)
        check_range("Tile", "confidence_score", self.confidence_score, 0, 1)
        check_range("Tile", "coverage_percentage", self.coverage_percentage, 0, 100)

    @property
    def is_synthetic(self) -> bool:
        return self.source is TileSource.SYNTHETIC

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "satellite_name": self.satellite_name,
            "acquisition_date": self.acquisition_date.isoformat(),
            "geometry": {"type": "Point", "coordinates": list(self.geometry)},
            "confidence_score": self.confidence_score,
            "data_type": self.data_type,
            "metadata": self.metadata.to_dict(),
            "aoi_covered": self.aoi_covered,
            "coverage_percentage": self.coverage_percentage,
            "source": self.source.value,
        }
