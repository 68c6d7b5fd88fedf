"""Data model for an Area of Interest (AOI) and its bounding box.

An AOI is built once at ingestion (``geo.aoi.parse_aoi``) from a
GeoJSON-like polygon collection. All coordinates are WGS 84 in
``(lon, lat)`` storage order; the swap to ``(lat, lon)`` happens only at
the rendering boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

Ring = tuple[tuple[float, float], ...]
"""A closed ring of ``(lon, lat)`` pairs (first == last)."""


@dataclass(frozen=True, slots=True)
class AoiRegion:
    """One named polygon of an AOI.

    Attributes:
        name: Region name (from the feature's ``name`` property).
        rings: ``(exterior, *holes)``; each ring closed.
    """

    name: str
    rings: tuple[Ring, ...] = field(default_factory=tuple)

    @property
    def exterior(self) -> Ring:
        return self.rings[0]

    @property
    def holes(self) -> tuple[Ring, ...]:
        return self.rings[1:]


@dataclass(frozen=True, slots=True)
class AreaOfInterest:
    """A validated polygon collection.

    Attributes:
        name: Display name of the AOI (e.g. the uploaded file stem).
        regions: One or more named polygon regions.
    """

    name: str
    regions: tuple[AoiRegion, ...] = field(default_factory=tuple)

    def iter_vertices(self) -> Iterator[tuple[float, float]]:
        """Yield every vertex of every ring of every region."""
        for region in self.regions:
            for ring in region.rings:
                yield from ring

    @property
    def ring_count(self) -> int:
        return sum(len(region.rings) for region in self.regions)

    def to_geojson(self) -> dict[str, object]:
        """Serialise to a GeoJSON FeatureCollection (``[lon, lat]`` order)."""
        return {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "properties": {"name": region.name},
                    "geometry": {
                        "type": "Polygon",
                        "coordinates": [[list(c) for c in ring] for ring in region.rings],
                    },
                }
                for region in self.regions
            ],
        }


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned bounding box in degrees.

    Attributes:
        min_lon: Western edge.
        max_lon: Eastern edge.
        min_lat: Southern edge.
        max_lat: Northern edge.
    """

    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """``(min_lon, min_lat, max_lon, max_lat)``, the STAC/Shapely order."""
        return (self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    def contains(self, lon: float, lat: float) -> bool:
        """Inclusive point-in-box test."""
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat

    def to_dict(self) -> dict[str, float]:
        """Serialise with the wire key names used by the tile search API."""
        return {
            "minLon": self.min_lon,
            "maxLon": self.max_lon,
            "minLat": self.min_lat,
            "maxLat": self.max_lat,
        }
