"""Fixed per-satellite templates.

Nominal footprint sizes drive coverage scoring; the remaining fields
populate synthetic fallback tiles.
"""

from __future__ import annotations

from dataclasses import dataclass

from geoalert.models.validation import ModelValidationError

KM_PER_DEGREE = 111.32
"""Length of one degree of latitude (and of longitude at the equator)."""

SATELLITE_FILTER_ALL = "all"
DEFAULT_FOOTPRINT_KM = 100.0


@dataclass(frozen=True, slots=True)
class SatelliteTemplate:
    """Static characteristics of one platform.

    Attributes:
        name: Platform name as it appears on tiles.
        resolution: Ground sample distance label.
        data_type: Product type label.
        footprint_km: Nominal square footprint edge length.
        cloud_range: Synthetic cloud cover range (percent).
        sun_elevation_range: Synthetic sun elevation range (degrees).
        tile_prefix: Prefix for synthetic tile ids.
    """

    name: str
    resolution: str
    data_type: str
    footprint_km: float
    cloud_range: tuple[float, float] = (0.0, 30.0)
    sun_elevation_range: tuple[float, float] = (30.0, 70.0)
    tile_prefix: str = ""


LANDSAT_8 = SatelliteTemplate(
    name="Landsat-8",
    resolution="30m",
    data_type="multispectral",
    footprint_km=185.0,
    tile_prefix="LC08",
)
SENTINEL_1A = SatelliteTemplate(
    name="Sentinel-1A",
    resolution="10m",
    data_type="optical",
    footprint_km=250.0,
    tile_prefix="S1A",
)
SENTINEL_2A = SatelliteTemplate(
    name="Sentinel-2A",
    resolution="10m",
    data_type="multispectral",
    footprint_km=110.0,
    tile_prefix="S2A",
)

TEMPLATES: dict[str, SatelliteTemplate] = {
    t.name: t for t in (LANDSAT_8, SENTINEL_1A, SENTINEL_2A)
}

# Platforms drawn from when the filter is "all".
ALL_FILTER_CHOICES: tuple[SatelliteTemplate, ...] = (LANDSAT_8, SENTINEL_1A)


def footprint_km(satellite_name: str) -> float:
    """Nominal footprint edge for *satellite_name* (default for unknown platforms)."""
    template = TEMPLATES.get(satellite_name)
    return template.footprint_km if template else DEFAULT_FOOTPRINT_KM


def check_satellite_filter(satellite_filter: str) -> str:
    """Return *satellite_filter* if it is ``"all"`` or a known platform.

    Raises:
        ModelValidationError: For an unknown platform name.
    """
    if satellite_filter == SATELLITE_FILTER_ALL or satellite_filter in TEMPLATES:
        return satellite_filter
    known = ", ".join([SATELLITE_FILTER_ALL, *TEMPLATES])
    raise ModelValidationError(
        "TileSearch", "satellite_filter", satellite_filter, f"expected one of {known}"
    )
