"""Closed event vocabularies.

Two families live here:

- **Push events** delivered by ``EventChannel``. ``PushEventKind`` is the
  closed set of names; every kind has exactly one frozen payload type.
  Handlers are registered by kind, never by free-form string.
- **Alert events** consumed by ``AlertStore.apply_event``. Push events
  that touch alerts are translated with ``to_alert_events``.

``OutboundEvent`` names the intents the client may emit.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from geoalert.models.alert import Alert, AlertStatus

if TYPE_CHECKING:
    from datetime import datetime

    from geoalert.core.exceptions import ConnectionLostError
    from geoalert.models.zone import Zone, ZoneStatus


# ---------------------------------------------------------------------------
# Channel state
# ---------------------------------------------------------------------------


class ChannelState(enum.Enum):
    """Lifecycle of the push connection.

    Values:
        DISCONNECTED: Idle; no credential or not yet connected.
        CONNECTING:   Handshake in progress.
        CONNECTED:    Live; emits are sent and events delivered.
        RECONNECTING: Dropped; waiting out a backoff delay.
        CLOSED:       Explicitly shut down. Terminal.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# Push events
# ---------------------------------------------------------------------------


class PushEventKind(enum.Enum):
    """Push event kinds, valued by their wire name."""

    NEW_ALERTS = "alerts:new_alerts"
    ALERT_ACKNOWLEDGED = "alert:acknowledged"
    ZONE_STATUS_UPDATED = "zone:status_updated"
    SATELLITE_PROCESSING_COMPLETE = "satellite:processing_complete"
    SATELLITE_PROCESSING_ERROR = "satellite:processing_error"
    CONNECTION_STATE_CHANGED = "connection:state_changed"

    @property
    def is_server_pushed(self) -> bool:
        """Whether the server sends this kind (the connection kind is local)."""
        return self is not PushEventKind.CONNECTION_STATE_CHANGED


@dataclass(frozen=True, slots=True)
class NewAlertsEvent:
    alerts: tuple[Alert, ...] = field(default_factory=tuple)

    kind = PushEventKind.NEW_ALERTS


@dataclass(frozen=True, slots=True)
class AlertAcknowledgedEvent:
    """An alert was acknowledged server-side.

    ``alert`` carries the full entity when the server sends it.
    """

    alert_id: str
    acknowledged_by: str = ""
    acknowledged_at: datetime | None = None
    alert: Alert | None = None

    kind = PushEventKind.ALERT_ACKNOWLEDGED


@dataclass(frozen=True, slots=True)
class ZoneStatusUpdatedEvent:
    zone_id: str
    status: ZoneStatus
    zone: Zone | None = None

    kind = PushEventKind.ZONE_STATUS_UPDATED


@dataclass(frozen=True, slots=True)
class SatelliteProcessingCompleteEvent:
    satellite_data_id: str = ""
    confidence: float = 0.0
    analysis_type: str = ""

    kind = PushEventKind.SATELLITE_PROCESSING_COMPLETE


@dataclass(frozen=True, slots=True)
class SatelliteProcessingErrorEvent:
    satellite_data_id: str = ""
    error: str = ""

    kind = PushEventKind.SATELLITE_PROCESSING_ERROR


@dataclass(frozen=True, slots=True)
class ConnectionStateChangedEvent:
    previous: ChannelState
    current: ChannelState
    error: ConnectionLostError | None = None

    kind = PushEventKind.CONNECTION_STATE_CHANGED


PushEvent = (
    NewAlertsEvent
    | AlertAcknowledgedEvent
    | ZoneStatusUpdatedEvent
    | SatelliteProcessingCompleteEvent
    | SatelliteProcessingErrorEvent
    | ConnectionStateChangedEvent
)


# ---------------------------------------------------------------------------
# Alert events (AlertStore input)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AlertCreated:
    alert: Alert


@dataclass(frozen=True, slots=True)
class AlertAcknowledged:
    alert_id: str
    acknowledged_by: str = ""
    acknowledged_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class AlertResolved:
    alert_id: str
    resolution: str = ""


AlertEvent = AlertCreated | AlertAcknowledged | AlertResolved


def to_alert_events(event: PushEvent) -> list[AlertEvent]:
    """Translate a push event into the alert events it implies.

    Acknowledgement payloads carrying a full entity that is already
    resolved become ``AlertResolved`` so the store converges in one step.
    Non-alert kinds yield nothing.
    """
    if isinstance(event, NewAlertsEvent):
        return [AlertCreated(alert) for alert in event.alerts]
    if isinstance(event, AlertAcknowledgedEvent):
        if event.alert is not None and event.alert.status is AlertStatus.RESOLVED:
            return [
                AlertAcknowledged(
                    event.alert_id,
                    acknowledged_by=event.alert.acknowledged_by or event.acknowledged_by,
                    acknowledged_at=event.alert.acknowledged_at or event.acknowledged_at,
                ),
                AlertResolved(event.alert_id, resolution=event.alert.resolution),
            ]
        return [
            AlertAcknowledged(
                event.alert_id,
                acknowledged_by=event.acknowledged_by,
                acknowledged_at=event.acknowledged_at,
            )
        ]
    return []


# ---------------------------------------------------------------------------
# Outbound intents
# ---------------------------------------------------------------------------


class OutboundEvent(enum.Enum):
    """Intents the client may emit over the push channel."""

    ACKNOWLEDGE_ALERT = "alert:acknowledge"
    UPDATE_ZONE_STATUS = "zone:status_update"
    PROCESS_SATELLITE_DATA = "satellite:process"
    JOIN_SESSION = "collaboration:join_session"
    LEAVE_SESSION = "collaboration:leave_session"
    MAP_VIEW_CHANGED = "map:view_changed"
