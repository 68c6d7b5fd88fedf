"""Coordinate-order conversion at the rendering boundary.

Storage and wire geometry is always ``(lon, lat)`` (GeoJSON order).
Map renderers want ``(lat, lon)``. The swap happens here and only here,
once, on the way out; stored geometry is never rewritten.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def normalize_coordinate_order(point: Sequence[float]) -> tuple[float, float]:
    """Convert a stored ``(lon, lat)`` pair to render order ``(lat, lon)``.

    One-way: applying it twice swaps back, so call it exactly once at the
    rendering boundary. The input is not modified.

    Raises:
        ValueError: If *point* is not a 2-element pair.
    """
    if len(point) != 2:
        msg = f"Expected a (lon, lat) pair, got {len(point)} values"
        raise ValueError(msg)
    lon, lat = point
    return (float(lat), float(lon))


def render_ring(ring: Iterable[Sequence[float]]) -> list[tuple[float, float]]:
    """Convert a ring of ``(lon, lat)`` pairs to render order."""
    return [normalize_coordinate_order(p) for p in ring]
