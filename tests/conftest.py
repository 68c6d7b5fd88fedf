"""Shared pytest fixtures for the geoalert test suite."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

import pytest

from geoalert.models.alert import Alert, AlertStatus, Severity
from geoalert.sync.notification_gate import NotificationGate
from geoalert.sync.transport import Transport

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


def make_alert(
    alert_id: str = "a1",
    status: AlertStatus = AlertStatus.ACTIVE,
    severity: Severity = Severity.HIGH,
    **kwargs: Any,
) -> Alert:
    """Build an alert with sensible defaults."""
    kwargs.setdefault("title", f"Alert {alert_id}")
    kwargs.setdefault("created_at", NOW)
    kwargs.setdefault("location", (-77.04, 38.88))
    return Alert(id=alert_id, status=status, severity=severity, **kwargs)


@pytest.fixture()
def sample_alerts() -> list[Alert]:
    """Three alerts, one per lifecycle stage."""
    return [
        make_alert("a1"),
        make_alert("a2", AlertStatus.ACKNOWLEDGED, Severity.MEDIUM, acknowledged_by="ops"),
        make_alert("a3", AlertStatus.RESOLVED, Severity.LOW, resolution="false positive"),
    ]


# ---------------------------------------------------------------------------
# AOI documents
# ---------------------------------------------------------------------------


SQUARE_RING = [
    [-77.1, 38.8],
    [-77.0, 38.8],
    [-77.0, 38.9],
    [-77.1, 38.9],
    [-77.1, 38.8],
]


@pytest.fixture()
def square_aoi_document() -> dict[str, Any]:
    """FeatureCollection with one 0.1° square near Washington, DC."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "Potomac"},
                "geometry": {"type": "Polygon", "coordinates": [SQUARE_RING]},
            }
        ],
    }


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class RecordingNotifier:
    """Notification sink that records ``(channel_key, message)`` pairs."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def __call__(self, channel_key: str, message: str) -> None:
        self.calls.append((channel_key, message))

    def for_channel(self, channel_key: str) -> list[str]:
        return [message for key, message in self.calls if key == channel_key]


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def gate(notifier: RecordingNotifier) -> NotificationGate:
    return NotificationGate(notifier)


# ---------------------------------------------------------------------------
# Push transport
# ---------------------------------------------------------------------------


class FakeTransport(Transport):
    """In-memory ``Transport`` that scripts handshake outcomes.

    ``failures`` handshakes fail before connects start succeeding.
    """

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.connect_calls: list[tuple[str, str]] = []
        self.emitted: list[tuple[str, Any]] = []
        self.disconnect_calls = 0
        self.event_names: list[str] = []
        self.connected_event = threading.Event()
        self._on_event: Any = None
        self._on_disconnect: Any = None

    def bind(self, event_names: Any, on_event: Any, on_disconnect: Any) -> None:
        self.event_names = list(event_names)
        self._on_event = on_event
        self._on_disconnect = on_disconnect

    def connect(self, url: str, credential: str) -> None:
        from geoalert.core.exceptions import ConnectionLostError

        self.connect_calls.append((url, credential))
        if self.failures > 0:
            self.failures -= 1
            msg = "handshake refused"
            raise ConnectionLostError(msg)
        self.connected_event.set()

    def disconnect(self) -> None:
        self.disconnect_calls += 1

    def emit(self, name: str, payload: Any) -> None:
        self.emitted.append((name, payload))

    # Test drivers ------------------------------------------------------

    def push(self, name: str, data: Any) -> None:
        """Deliver an inbound server event."""
        self._on_event(name, data)

    def drop(self) -> None:
        """Simulate the server dropping the connection."""
        self.connected_event.clear()
        self._on_disconnect()


@pytest.fixture()
def fake_transport() -> FakeTransport:
    return FakeTransport()
