"""Tile list filtering and summaries for display."""

from __future__ import annotations

import enum
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from typing import TYPE_CHECKING

import numpy as np

from geoalert.geo.templates import SATELLITE_FILTER_ALL, check_satellite_filter
from geoalert.models.validation import ModelValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from geoalert.models.tile import Tile

HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.7
WEEK_WINDOW = timedelta(days=7)
MONTH_WINDOW = timedelta(days=30)


class DateRange(enum.Enum):
    """Acquisition date presets."""

    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"


class ConfidenceTier(enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def confidence_tier(score: float) -> ConfidenceTier:
    """``HIGH`` at 0.9 and above, ``MEDIUM`` at 0.7 and above, else ``LOW``."""
    if score >= HIGH_CONFIDENCE:
        return ConfidenceTier.HIGH
    if score >= MEDIUM_CONFIDENCE:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def filter_tiles(
    tiles: Iterable[Tile],
    *,
    date_range: DateRange | str = DateRange.ALL,
    satellite: str = SATELLITE_FILTER_ALL,
    custom_date: date | None = None,
    now: datetime | None = None,
) -> list[Tile]:
    """Keep tiles matching the date preset and satellite name.

    ``today`` and ``custom`` compare UTC calendar dates; ``week`` and
    ``month`` keep tiles acquired within the last 7 / 30 days.

    Raises:
        ModelValidationError: For an unknown preset or satellite, or
            ``custom`` without *custom_date*.
    """
    preset = _date_range(date_range)
    check_satellite_filter(satellite)
    if preset is DateRange.CUSTOM and custom_date is None:
        raise ModelValidationError("TileFilter", "custom_date", None, "required for custom range")
    current = now or datetime.now(UTC)

    kept = []
    for tile in tiles:
        if satellite != SATELLITE_FILTER_ALL and tile.satellite_name != satellite:
            continue
        acquired = tile.acquisition_date
        if acquired.tzinfo is None:
            acquired = acquired.replace(tzinfo=UTC)
        if preset is DateRange.TODAY and acquired.astimezone(UTC).date() != current.astimezone(UTC).date():
            continue
        if preset is DateRange.WEEK and acquired < current - WEEK_WINDOW:
            continue
        if preset is DateRange.MONTH and acquired < current - MONTH_WINDOW:
            continue
        if preset is DateRange.CUSTOM and acquired.astimezone(UTC).date() != custom_date:
            continue
        kept.append(tile)
    return kept


@dataclass(frozen=True, slots=True)
class TileSummary:
    """Headline numbers for a tile list."""

    count: int = 0
    covered: int = 0
    synthetic: int = 0
    average_confidence: float = 0.0
    average_coverage: float = 0.0
    by_satellite: dict[str, int] = field(default_factory=dict)
    by_tier: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "count": self.count,
            "covered": self.covered,
            "synthetic": self.synthetic,
            "average_confidence": self.average_confidence,
            "average_coverage": self.average_coverage,
            "by_satellite": dict(self.by_satellite),
            "by_tier": dict(self.by_tier),
        }


def summarize(tiles: Iterable[Tile]) -> TileSummary:
    items = list(tiles)
    if not items:
        return TileSummary()
    confidences = np.array([t.confidence_score for t in items], dtype=np.float64)
    covered = [t for t in items if t.aoi_covered]
    coverage = np.array([t.coverage_percentage for t in covered], dtype=np.float64)
    tiers = Counter(confidence_tier(t.confidence_score).value for t in items)
    return TileSummary(
        count=len(items),
        covered=len(covered),
        synthetic=sum(1 for t in items if t.is_synthetic),
        average_confidence=round(float(confidences.mean()), 3),
        average_coverage=round(float(coverage.mean()), 2) if covered else 0.0,
        by_satellite=dict(Counter(t.satellite_name for t in items)),
        by_tier=dict(tiers),
    )


def _date_range(value: DateRange | str) -> DateRange:
    if isinstance(value, DateRange):
        return value
    try:
        return DateRange(value)
    except ValueError as exc:
        raise ModelValidationError("TileFilter", "date_range", value, "unknown preset") from exc


def date_window(
    date_range: DateRange | str,
    *,
    now: datetime | None = None,
    custom_date: date | None = None,
) -> tuple[datetime, datetime | None] | None:
    """Acquisition window ``(start, end)`` for a preset; ``None`` for ``all``.

    ``end`` is ``None`` for open-ended presets.

    Raises:
        ModelValidationError: For an unknown preset, or ``custom`` without
            *custom_date*.
    """
    preset = _date_range(date_range)
    current = now or datetime.now(UTC)
    if preset is DateRange.ALL:
        return None
    if preset is DateRange.TODAY:
        start = datetime.combine(current.astimezone(UTC).date(), time.min, tzinfo=UTC)
        return (start, None)
    if preset is DateRange.WEEK:
        return (current - WEEK_WINDOW, None)
    if preset is DateRange.MONTH:
        return (current - MONTH_WINDOW, None)
    if custom_date is None:
        raise ModelValidationError("TileFilter", "custom_date", None, "required for custom range")
    start = datetime.combine(custom_date, time.min, tzinfo=UTC)
    return (start, start + timedelta(days=1, microseconds=-1))
