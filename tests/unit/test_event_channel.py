"""Tests for EventChannel: connection state machine, dispatch, emits.

Uses the in-memory ``FakeTransport`` from ``tests.conftest`` and tiny
backoff delays so reconnect loops finish in milliseconds.
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from geoalert.models.events import (
    AlertAcknowledgedEvent,
    ChannelState,
    ConnectionStateChangedEvent,
    NewAlertsEvent,
    OutboundEvent,
    PushEventKind,
)
from geoalert.sync.event_channel import EventChannel, reconnect_delay
from tests.conftest import FakeTransport

URL = "http://push.test"
WAIT_S = 2.0


def _channel(transport: FakeTransport, base: float = 0.01, cap: float = 0.05) -> EventChannel:
    return EventChannel(URL, transport, reconnect_base_s=base, reconnect_max_s=cap)


class TestReconnectDelay:
    def test_doubles_until_cap(self) -> None:
        delays = [reconnect_delay(n, 1.0, 30.0) for n in range(1, 8)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]

    def test_cap_below_base(self) -> None:
        assert reconnect_delay(1, 5.0, 2.0) == 2.0

    def test_attempt_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            reconnect_delay(0, 1.0, 30.0)


class TestConnect:
    def test_binds_server_pushed_kinds(self, fake_transport: FakeTransport) -> None:
        _channel(fake_transport)
        assert set(fake_transport.event_names) == {
            kind.value for kind in PushEventKind if kind.is_server_pushed
        }
        assert PushEventKind.CONNECTION_STATE_CHANGED.value not in fake_transport.event_names

    def test_no_credential_stays_disconnected(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        assert channel.connect(None) is False
        assert channel.connect("") is False
        assert channel.state is ChannelState.DISCONNECTED
        assert fake_transport.connect_calls == []

    def test_connect_success(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        states: list[ChannelState] = []
        channel.on(PushEventKind.CONNECTION_STATE_CHANGED, lambda e: states.append(e.current))
        assert channel.connect("tok") is True
        assert channel.connected
        assert fake_transport.connect_calls == [(URL, "tok")]
        assert states == [ChannelState.CONNECTING, ChannelState.CONNECTED]

    def test_connect_when_connected_is_noop(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        channel.connect("tok")
        assert channel.connect("tok") is True
        assert len(fake_transport.connect_calls) == 1

    def test_failed_handshake_reconnects_with_backoff(self) -> None:
        transport = FakeTransport(failures=2)
        channel = _channel(transport)
        try:
            assert channel.connect("tok") is False
            assert channel.wait_for_state(ChannelState.CONNECTED, WAIT_S)
            assert len(transport.connect_calls) == 3
        finally:
            channel.close()

    def test_reconnecting_event_carries_error(self) -> None:
        transport = FakeTransport(failures=1)
        channel = _channel(transport)
        events: list[ConnectionStateChangedEvent] = []
        channel.on(PushEventKind.CONNECTION_STATE_CHANGED, events.append)
        try:
            channel.connect("tok")
            assert channel.wait_for_state(ChannelState.CONNECTED, WAIT_S)
        finally:
            channel.close()
        reconnecting = [e for e in events if e.current is ChannelState.RECONNECTING]
        assert reconnecting
        assert reconnecting[0].error is not None


class TestDropAndClose:
    def test_drop_triggers_reconnect(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        try:
            channel.connect("tok")
            fake_transport.drop()
            assert channel.wait_for_state(ChannelState.CONNECTED, WAIT_S)
            assert len(fake_transport.connect_calls) == 2
        finally:
            channel.close()

    def test_drop_when_not_connected_ignored(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        fake_transport.drop()
        assert channel.state is ChannelState.DISCONNECTED

    def test_close_is_terminal(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        channel.connect("tok")
        channel.close()
        assert channel.state is ChannelState.CLOSED
        assert channel.connect("tok") is False
        assert channel.state is ChannelState.CLOSED
        assert fake_transport.disconnect_calls == 1

    def test_close_is_idempotent(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        channel.close()
        channel.close()
        assert channel.state is ChannelState.CLOSED

    def test_close_cancels_backoff(self) -> None:
        transport = FakeTransport(failures=1000)
        channel = _channel(transport, base=0.01, cap=0.01)
        channel.connect("tok")
        channel.close()
        calls = len(transport.connect_calls)
        assert channel.state is ChannelState.CLOSED
        assert not channel.wait_for_state(ChannelState.CONNECTED, 0.1)
        assert len(transport.connect_calls) == calls

    def test_disconnect_allows_reconnect(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        channel.connect("tok")
        channel.disconnect()
        assert channel.state is ChannelState.DISCONNECTED
        assert channel.connect("tok2") is True
        assert fake_transport.connect_calls[-1] == (URL, "tok2")


class TestDispatch:
    def test_handlers_run_in_registration_order(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        order: list[str] = []
        channel.on(PushEventKind.ALERT_ACKNOWLEDGED, lambda _e: order.append("first"))
        channel.on(PushEventKind.ALERT_ACKNOWLEDGED, lambda _e: order.append("second"))
        fake_transport.push("alert:acknowledged", {"alertId": "42"})
        assert order == ["first", "second"]

    def test_payload_is_typed(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        handler = MagicMock()
        channel.on(PushEventKind.NEW_ALERTS, handler)
        fake_transport.push("alerts:new_alerts", {"alerts": [{"id": 7, "title": "Fence breach"}]})
        event = handler.call_args.args[0]
        assert isinstance(event, NewAlertsEvent)
        assert event.alerts[0].id == "7"

    def test_off_removes_handler(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        handler = MagicMock()
        off = channel.on(PushEventKind.ALERT_ACKNOWLEDGED, handler)
        off()
        fake_transport.push("alert:acknowledged", {"alertId": "42"})
        handler.assert_not_called()

    def test_bad_payload_dropped(
        self, fake_transport: FakeTransport, caplog: pytest.LogCaptureFixture
    ) -> None:
        channel = _channel(fake_transport)
        handler = MagicMock()
        channel.on(PushEventKind.ALERT_ACKNOWLEDGED, handler)
        with caplog.at_level(logging.WARNING, logger="geoalert.sync.event_channel"):
            fake_transport.push("alert:acknowledged", {"unexpected": True})
        handler.assert_not_called()
        assert "Push payload rejected" in caplog.text

    def test_unknown_event_ignored(self, fake_transport: FakeTransport) -> None:
        _channel(fake_transport)
        fake_transport.push("analytics:tick", {})

    def test_failing_handler_does_not_block_others(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        seen: list[AlertAcknowledgedEvent] = []

        def _boom(_event: AlertAcknowledgedEvent) -> None:
            raise RuntimeError("handler bug")

        channel.on(PushEventKind.ALERT_ACKNOWLEDGED, _boom)
        channel.on(PushEventKind.ALERT_ACKNOWLEDGED, seen.append)
        fake_transport.push("alert:acknowledged", {"alertId": "42"})
        assert [e.alert_id for e in seen] == ["42"]


class TestEmit:
    def test_dropped_unless_connected(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        assert channel.acknowledge_alert("42") is False
        assert fake_transport.emitted == []

    def test_intents_when_connected(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        channel.connect("tok")
        assert channel.acknowledge_alert("42")
        assert channel.update_zone_status("z1", "critical")
        assert channel.process_satellite_data("s1", "change_detection")
        assert channel.join_session("room-1")
        assert channel.leave_session("room-1")
        assert channel.update_map_view({"zoom": 9})
        assert fake_transport.emitted == [
            (OutboundEvent.ACKNOWLEDGE_ALERT.value, {"alertId": "42"}),
            (OutboundEvent.UPDATE_ZONE_STATUS.value, {"zoneId": "z1", "status": "critical"}),
            (
                OutboundEvent.PROCESS_SATELLITE_DATA.value,
                {"satelliteDataId": "s1", "analysisType": "change_detection"},
            ),
            (OutboundEvent.JOIN_SESSION.value, {"sessionId": "room-1"}),
            (OutboundEvent.LEAVE_SESSION.value, {"sessionId": "room-1"}),
            (OutboundEvent.MAP_VIEW_CHANGED.value, {"zoom": 9}),
        ]

    def test_nothing_buffered_across_disconnect(self, fake_transport: FakeTransport) -> None:
        channel = _channel(fake_transport)
        channel.emit(OutboundEvent.JOIN_SESSION, {"sessionId": "room-1"})
        channel.connect("tok")
        assert fake_transport.emitted == []
