"""Tests for GeoAlertSession wiring: snapshots, push routing, resync."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from typing import Any

import httpx
import pytest

from geoalert.catalogs.rest import RestTileCatalog
from geoalert.core.config import GeoAlertConfig
from geoalert.models.alert import AlertStatus
from geoalert.models.events import ChannelState
from geoalert.models.zone import ZoneStatus
from geoalert.session import GeoAlertSession
from tests.conftest import FakeTransport, RecordingNotifier

WAIT_S = 2.0


class _FakeServer:
    """httpx handler serving alert and zone snapshots."""

    def __init__(self) -> None:
        self.alert_fetches = 0
        self.fail_alerts = False
        self.resynced = threading.Event()
        self.alerts: list[dict[str, Any]] = [{"id": "a1", "title": "Fence breach", "status": "active"}]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/alerts":
            self.alert_fetches += 1
            if self.alert_fetches >= 2:
                self.resynced.set()
            if self.fail_alerts:
                return httpx.Response(503)
            return httpx.Response(200, json={"alerts": self.alerts})
        if path == "/api/map/zones":
            return httpx.Response(200, json={"zones": [{"id": "z1", "zone_name": "Harbor"}]})
        return httpx.Response(404)


@pytest.fixture()
def server() -> _FakeServer:
    return _FakeServer()


@pytest.fixture()
def session(
    server: _FakeServer, fake_transport: FakeTransport, notifier: RecordingNotifier
) -> Iterator[GeoAlertSession]:
    config = GeoAlertConfig(
        api_base_url="http://api.test",
        socket_url="http://push.test",
        reconnect_base_s=0.01,
        reconnect_max_s=0.05,
        fallback_seed=3,
    )
    session = GeoAlertSession(
        config,
        actor="analyst",
        notifier=notifier,
        transport=fake_transport,
        http_transport=httpx.MockTransport(server),
    )
    yield session
    session.close()


class TestStart:
    def test_loads_snapshots_and_connects(
        self, session: GeoAlertSession, fake_transport: FakeTransport
    ) -> None:
        assert session.start("tok") is True
        assert [a.id for a in session.alerts.alerts()] == ["a1"]
        assert [z.id for z in session.zones.zones()] == ["z1"]
        assert fake_transport.connect_calls == [("http://push.test", "tok")]

    def test_without_credential(self, session: GeoAlertSession, server: _FakeServer) -> None:
        assert session.start(None) is False
        assert server.alert_fetches == 0
        assert session.channel.state is ChannelState.DISCONNECTED

    def test_snapshot_failure_does_not_block_connect(
        self, session: GeoAlertSession, server: _FakeServer, notifier: RecordingNotifier
    ) -> None:
        server.fail_alerts = True
        assert session.start("tok") is True
        assert notifier.for_channel("alerts.fetch") == ["Failed to load alerts"]

    def test_matcher_uses_configured_catalog(self, session: GeoAlertSession) -> None:
        assert isinstance(session.matcher.catalog, RestTileCatalog)


class TestPushRouting:
    def test_new_alert_reaches_store(
        self, session: GeoAlertSession, fake_transport: FakeTransport
    ) -> None:
        session.start("tok")
        fake_transport.push("alerts:new_alerts", {"alerts": [{"id": "a2", "title": "Drone"}]})
        assert [a.id for a in session.alerts.alerts()] == ["a2", "a1"]

    def test_acknowledged_event(self, session: GeoAlertSession, fake_transport: FakeTransport) -> None:
        session.start("tok")
        fake_transport.push("alert:acknowledged", {"alertId": "a1", "acknowledgedBy": "ops"})
        alert = session.alerts.by_id("a1")
        assert alert.status is AlertStatus.ACKNOWLEDGED
        assert alert.acknowledged_by == "ops"

    def test_zone_status(self, session: GeoAlertSession, fake_transport: FakeTransport) -> None:
        session.start("tok")
        fake_transport.push("zone:status_updated", {"zoneId": "z1", "status": "critical"})
        assert session.zones.by_id("z1").status is ZoneStatus.CRITICAL

    def test_processing_errors_notify_once_per_episode(
        self,
        session: GeoAlertSession,
        fake_transport: FakeTransport,
        notifier: RecordingNotifier,
    ) -> None:
        session.start("tok")
        fake_transport.push("satellite:processing_error", {"satelliteDataId": "s1", "error": "x"})
        fake_transport.push("satellite:processing_error", {"satelliteDataId": "s2", "error": "x"})
        fake_transport.push("satellite:processing_complete", {"satelliteDataId": "s3", "confidence": 0.9})
        fake_transport.push("satellite:processing_error", {"satelliteDataId": "s4", "error": "x"})
        assert len(notifier.for_channel("satellite.processing")) == 2


class TestReconnect:
    def test_resync_after_reconnect(
        self,
        session: GeoAlertSession,
        server: _FakeServer,
        fake_transport: FakeTransport,
        notifier: RecordingNotifier,
    ) -> None:
        session.start("tok")
        server.alerts = [
            {"id": "a1", "title": "Fence breach", "status": "resolved"},
            {"id": "a3", "title": "Missed while offline"},
        ]
        fake_transport.drop()
        assert server.resynced.wait(WAIT_S)
        assert session.channel.wait_for_state(ChannelState.CONNECTED, WAIT_S)
        assert notifier.for_channel("push.connection") == ["Connection to server failed"]
        deadline = threading.Event()
        for _ in range(50):
            if session.alerts.by_id("a3") is not None:
                break
            deadline.wait(0.02)
        assert session.alerts.by_id("a3") is not None
        assert session.alerts.by_id("a1").status is AlertStatus.RESOLVED
