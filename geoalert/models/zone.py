"""Data model for a strategic zone.

Zones are immutable once created except for ``status``, which the
server pushes through ``zone:status_updated`` events.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace

from geoalert.models.validation import check_non_empty


class ZoneStatus(enum.Enum):
    """Operational status of a zone."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class Zone:
    """A named polygon zone.

    Attributes:
        id: Unique identifier.
        name: Display name.
        geometry: Exterior ring as ``(lon, lat)`` tuples (storage order).
        status: Current ``ZoneStatus``.
        priority: Ordering priority (higher first).
    """

    id: str
    name: str
    geometry: tuple[tuple[float, float], ...] = field(default_factory=tuple)
    status: ZoneStatus = ZoneStatus.NORMAL
    priority: int = 0

    def __post_init__(self) -> None:
        check_non_empty("Zone", "id", self.id)

    def with_status(self, status: ZoneStatus) -> Zone:
        return replace(self, status=status)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "zone_name": self.name,
            "geometry": {
                "type": "Polygon",
                "coordinates": [[list(c) for c in self.geometry]],
            },
            "status": self.status.value,
            "priority": self.priority,
        }
