"""AOI ingestion and bounding box.

Turns an uploaded GeoJSON-like document into a validated
``AreaOfInterest``. JSON text is decoded here, once; everything
downstream works on the frozen model.

Accepted inputs:
- ``FeatureCollection`` of Polygon / MultiPolygon features
- a single ``Feature``
- a bare ``Polygon`` or ``MultiPolygon`` geometry

Validation (any failure rejects the whole document):
- every ring closed (first vertex == last vertex)
- at least 3 distinct vertices per ring
- numeric, finite WGS 84 ``[lon, lat]`` positions (altitude dropped)
- non-zero area and no self-intersection (checked with shapely)
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from shapely.geometry import Polygon
from shapely.validation import explain_validity

from geoalert.core.exceptions import InvalidGeometryError
from geoalert.models.aoi import AoiRegion, AreaOfInterest, BoundingBox, Ring

logger = logging.getLogger("geoalert.geo.aoi")

MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0
MIN_DISTINCT_VERTICES = 3

_POLYGON_TYPES = ("Polygon", "MultiPolygon")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_aoi(document: str | bytes | Mapping[str, Any], name: str = "aoi") -> AreaOfInterest:
    """Build an ``AreaOfInterest`` from a GeoJSON-like document.

    Args:
        document: Parsed mapping or its JSON text.
        name: AOI display name; also the fallback region name.

    Raises:
        InvalidGeometryError: If the document is not a well-formed
            polygon collection.
    """
    data = _decode(document)
    doc_type = data.get("type")

    if doc_type == "FeatureCollection":
        features = data.get("features")
        if not isinstance(features, list) or not features:
            msg = "FeatureCollection has no features"
            raise InvalidGeometryError(msg)
        regions: list[AoiRegion] = []
        for index, feature in enumerate(features):
            regions.extend(_feature_regions(feature, f"{name}-{index + 1}"))
    elif doc_type == "Feature":
        regions = _feature_regions(data, name)
    elif doc_type in _POLYGON_TYPES:
        regions = _geometry_regions(data, name)
    else:
        msg = f"Unsupported AOI document type: {doc_type!r}"
        raise InvalidGeometryError(msg)

    aoi = AreaOfInterest(name=name, regions=tuple(regions))
    logger.info(
        "AOI parsed | name=%s | regions=%d | rings=%d",
        name,
        len(aoi.regions),
        aoi.ring_count,
    )
    return aoi


def bounding_box(aoi: AreaOfInterest) -> BoundingBox:
    """Minimal axis-aligned box enclosing every vertex of every ring.

    Raises:
        InvalidGeometryError: If the AOI has no vertices.
    """
    lons: list[float] = []
    lats: list[float] = []
    for lon, lat in aoi.iter_vertices():
        lons.append(lon)
        lats.append(lat)
    if not lons:
        msg = f"AOI '{aoi.name}' has no vertices"
        raise InvalidGeometryError(msg)
    return BoundingBox(min_lon=min(lons), max_lon=max(lons), min_lat=min(lats), max_lat=max(lats))


# ---------------------------------------------------------------------------
# Document structure
# ---------------------------------------------------------------------------


def _decode(document: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(document, str | bytes):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as exc:
            msg = f"AOI is not valid JSON: {exc}"
            raise InvalidGeometryError(msg) from exc
    if not isinstance(document, Mapping):
        msg = f"AOI must be a JSON object, got {type(document).__name__}"
        raise InvalidGeometryError(msg)
    return document


def _feature_regions(feature: Any, default_name: str) -> list[AoiRegion]:
    if not isinstance(feature, Mapping) or feature.get("type") != "Feature":
        msg = f"Expected a Feature in '{default_name}'"
        raise InvalidGeometryError(msg)
    properties = feature.get("properties") or {}
    region_name = str(properties.get("name") or default_name)
    geometry = feature.get("geometry")
    if not isinstance(geometry, Mapping):
        msg = f"Feature '{region_name}' has no geometry"
        raise InvalidGeometryError(msg)
    return _geometry_regions(geometry, region_name)


def _geometry_regions(geometry: Mapping[str, Any], region_name: str) -> list[AoiRegion]:
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if geom_type == "Polygon":
        return [_polygon_region(coordinates, region_name)]
    if geom_type == "MultiPolygon":
        if not isinstance(coordinates, list) or not coordinates:
            msg = f"MultiPolygon '{region_name}' has no polygons"
            raise InvalidGeometryError(msg)
        if len(coordinates) == 1:
            return [_polygon_region(coordinates[0], region_name)]
        return [
            _polygon_region(polygon, f"{region_name}-{index + 1}")
            for index, polygon in enumerate(coordinates)
        ]
    msg = f"Region '{region_name}' has unsupported geometry type {geom_type!r}"
    raise InvalidGeometryError(msg)


def _polygon_region(rings: Any, region_name: str) -> AoiRegion:
    if not isinstance(rings, list) or not rings:
        msg = f"Polygon '{region_name}' has no rings"
        raise InvalidGeometryError(msg)
    parsed = tuple(_ring(ring, region_name) for ring in rings)
    _check_area(parsed, region_name)
    return AoiRegion(name=region_name, rings=parsed)


# ---------------------------------------------------------------------------
# Ring and coordinate validation
# ---------------------------------------------------------------------------


def _ring(raw: Any, region_name: str) -> Ring:
    if not isinstance(raw, list):
        msg = f"Ring in '{region_name}' is not a coordinate list"
        raise InvalidGeometryError(msg)
    ring = tuple(_position(p, region_name) for p in raw)

    if len(ring) < 2 or ring[0] != ring[-1]:
        msg = f"Ring in '{region_name}' is not closed (first vertex must equal last)"
        raise InvalidGeometryError(msg)

    distinct = len(set(ring))
    if distinct < MIN_DISTINCT_VERTICES:
        msg = (
            f"Ring in '{region_name}' has {distinct} distinct vertices, "
            f"need at least {MIN_DISTINCT_VERTICES}"
        )
        raise InvalidGeometryError(msg)
    return ring


def _position(raw: Any, region_name: str) -> tuple[float, float]:
    if not isinstance(raw, Sequence) or isinstance(raw, str) or len(raw) not in (2, 3):
        msg = f"Invalid position {raw!r} in '{region_name}'; expected [lon, lat]"
        raise InvalidGeometryError(msg)
    lon, lat = raw[0], raw[1]
    for value in (lon, lat):
        if isinstance(value, bool) or not isinstance(value, int | float) or not math.isfinite(value):
            msg = f"Non-numeric coordinate {value!r} in '{region_name}'"
            raise InvalidGeometryError(msg)
    if not (MIN_LONGITUDE <= lon <= MAX_LONGITUDE):
        msg = (
            f"Longitude {lon} out of WGS 84 range [{MIN_LONGITUDE}, {MAX_LONGITUDE}] "
            f"in '{region_name}'"
        )
        raise InvalidGeometryError(msg)
    if not (MIN_LATITUDE <= lat <= MAX_LATITUDE):
        msg = (
            f"Latitude {lat} out of WGS 84 range [{MIN_LATITUDE}, {MAX_LATITUDE}] "
            f"in '{region_name}'"
        )
        raise InvalidGeometryError(msg)
    return (float(lon), float(lat))


def _check_area(rings: tuple[Ring, ...], region_name: str) -> None:
    poly = Polygon(rings[0], list(rings[1:]))
    if poly.area == 0:
        msg = f"Zero-area polygon in '{region_name}'"
        raise InvalidGeometryError(msg)
    if not poly.is_valid:
        reason = explain_validity(poly)
        logger.warning("Invalid polygon rejected | region=%s | reason=%s", region_name, reason)
        msg = f"Invalid polygon in '{region_name}': {reason}"
        raise InvalidGeometryError(msg)
