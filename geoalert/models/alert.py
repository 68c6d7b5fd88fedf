"""Alert lifecycle model and derived statistics.

An ``Alert`` moves forward only: ``active → acknowledged → resolved``.
Transition methods return a new frozen instance and raise
``IllegalTransitionError`` for anything else, so callers decide whether
a refused transition is an error (a user intent) or a no-op (a merge).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from geoalert.core.exceptions import AlreadyTerminalError, IllegalTransitionError
from geoalert.models.validation import check_non_empty, check_point

if TYPE_CHECKING:
    from collections.abc import Iterable


class Severity(enum.Enum):
    """Alert severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(enum.Enum):
    """Alert lifecycle stage, ordered by ``rank``."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"

    @property
    def rank(self) -> int:
        """Position in the lifecycle (0 = active)."""
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self is AlertStatus.RESOLVED

    def can_advance_to(self, target: AlertStatus) -> bool:
        """Whether *target* is strictly later in the lifecycle."""
        return target.rank > self.rank


_STATUS_RANK = {
    AlertStatus.ACTIVE: 0,
    AlertStatus.ACKNOWLEDGED: 1,
    AlertStatus.RESOLVED: 2,
}


@dataclass(frozen=True, slots=True)
class Alert:
    """A security alert.

    Attributes:
        id: Unique, immutable identifier.
        title: Short headline.
        severity: One of ``Severity``.
        status: Current lifecycle stage.
        description: Free-text details.
        location: Alert position as ``(lon, lat)``, or ``None``.
        created_at: Creation timestamp (immutable).
        acknowledged_by: Who acknowledged first (set once).
        acknowledged_at: When it was first acknowledged (set once).
        resolution: Resolution note (set once, on resolve).
    """

    id: str
    title: str
    severity: Severity = Severity.MEDIUM
    status: AlertStatus = AlertStatus.ACTIVE
    description: str = ""
    location: tuple[float, float] | None = None
    created_at: datetime | None = None
    acknowledged_by: str = ""
    acknowledged_at: datetime | None = None
    resolution: str = ""

    def __post_init__(self) -> None:
        check_non_empty("Alert", "id", self.id)
        if self.location is not None:
            check_point("Alert", "location", self.location)

    def acknowledged(self, *, by: str = "", at: datetime | None = None) -> Alert:
        """Return this alert moved to ``acknowledged``.

        ``acknowledged_by`` / ``acknowledged_at`` keep their first values.

        Raises:
            AlreadyTerminalError: If the alert is resolved.
            IllegalTransitionError: If the alert is already acknowledged.
        """
        self._check_advance(AlertStatus.ACKNOWLEDGED)
        return replace(
            self,
            status=AlertStatus.ACKNOWLEDGED,
            acknowledged_by=self.acknowledged_by or by,
            acknowledged_at=self.acknowledged_at or at or datetime.now(UTC),
        )

    def resolved(self, resolution: str = "") -> Alert:
        """Return this alert moved to ``resolved`` (from active or acknowledged).

        Raises:
            AlreadyTerminalError: If the alert is already resolved.
        """
        self._check_advance(AlertStatus.RESOLVED)
        return replace(
            self,
            status=AlertStatus.RESOLVED,
            resolution=self.resolution or resolution,
        )

    def _check_advance(self, target: AlertStatus) -> None:
        if self.status.is_terminal:
            raise AlreadyTerminalError(self.id, self.status.value, target.value)
        if not self.status.can_advance_to(target):
            raise IllegalTransitionError(self.id, self.status.value, target.value)

    def to_dict(self) -> dict[str, object]:
        """Serialise to the REST/push wire shape."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "status": self.status.value,
            "location": (
                {"type": "Point", "coordinates": list(self.location)}
                if self.location is not None
                else None
            ),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "acknowledged_by": self.acknowledged_by or None,
            "acknowledged_at": self.acknowledged_at.isoformat() if self.acknowledged_at else None,
            "resolution": self.resolution or None,
        }


@dataclass(frozen=True, slots=True)
class AlertStats:
    """Counts derived from a full scan of an alert collection."""

    total: int = 0
    active: int = 0
    acknowledged: int = 0
    resolved: int = 0

    @classmethod
    def from_alerts(cls, alerts: Iterable[Alert]) -> AlertStats:
        counts = dict.fromkeys(AlertStatus, 0)
        total = 0
        for alert in alerts:
            counts[alert.status] += 1
            total += 1
        return cls(
            total=total,
            active=counts[AlertStatus.ACTIVE],
            acknowledged=counts[AlertStatus.ACKNOWLEDGED],
            resolved=counts[AlertStatus.RESOLVED],
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "active": self.active,
            "acknowledged": self.acknowledged,
            "resolved": self.resolved,
        }
