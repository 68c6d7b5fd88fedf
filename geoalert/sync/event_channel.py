"""Long-lived authenticated push channel.

``EventChannel`` owns exactly one connection and its state machine::

    DISCONNECTED → CONNECTING → CONNECTED → (DISCONNECTED | RECONNECTING)
                                             RECONNECTING → CONNECTING → …
    any → CLOSED   (explicit close(), terminal)

It decodes inbound payloads into typed push events and dispatches them
to handlers registered per ``PushEventKind``. It never touches alert or
zone state; stores decide what an event means.

Outbound emits are fire-and-forget and only happen while CONNECTED.
Nothing is buffered across a disconnection; callers that need delivery
use the REST path.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from geoalert.core.exceptions import ConnectionLostError, PayloadContractError
from geoalert.models.events import (
    ChannelState,
    ConnectionStateChangedEvent,
    OutboundEvent,
    PushEventKind,
)
from geoalert.models.wire import decode_push_event

if TYPE_CHECKING:
    from collections.abc import Callable

    from geoalert.models.events import PushEvent
    from geoalert.sync.transport import Transport

logger = logging.getLogger("geoalert.sync.event_channel")


def reconnect_delay(attempt: int, base: float, cap: float) -> float:
    """Backoff before reconnect *attempt* (1-based): ``min(base * 2**(attempt-1), cap)``."""
    if attempt < 1:
        msg = f"attempt must be >= 1, got {attempt}"
        raise ValueError(msg)
    return min(base * 2 ** (attempt - 1), cap)


class EventChannel:
    """Push connection with typed dispatch and bounded reconnect backoff.

    Args:
        url: Socket server URL.
        transport: Connection primitives. Defaults to ``SocketIOTransport``.
        reconnect_base_s: First backoff delay.
        reconnect_max_s: Backoff ceiling.
    """

    def __init__(
        self,
        url: str,
        transport: Transport | None = None,
        *,
        reconnect_base_s: float = 1.0,
        reconnect_max_s: float = 30.0,
    ) -> None:
        if transport is None:
            from geoalert.sync.transport import SocketIOTransport

            transport = SocketIOTransport()
        self._url = url
        self._transport = transport
        self._base = reconnect_base_s
        self._cap = reconnect_max_s

        self._state = ChannelState.DISCONNECTED
        self._credential = ""
        self._state_cond = threading.Condition()
        self._handlers: dict[PushEventKind, list[Callable[[Any], None]]] = defaultdict(list)
        self._handlers_lock = threading.Lock()
        self._cancel = threading.Event()
        self._reconnect_thread: threading.Thread | None = None
        self._reconnect_cancel: threading.Event | None = None

        self._transport.bind(
            [kind.value for kind in PushEventKind if kind.is_server_pushed],
            self._on_transport_event,
            self._on_transport_disconnect,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ChannelState:
        with self._state_cond:
            return self._state

    @property
    def connected(self) -> bool:
        return self.state is ChannelState.CONNECTED

    def wait_for_state(self, state: ChannelState, timeout: float | None = None) -> bool:
        """Block until the channel reaches *state*. Returns ``False`` on timeout."""
        with self._state_cond:
            return self._state_cond.wait_for(lambda: self._state is state, timeout)

    def _transition(
        self,
        new: ChannelState,
        error: ConnectionLostError | None = None,
        *,
        expect: tuple[ChannelState, ...] | None = None,
    ) -> bool:
        with self._state_cond:
            previous = self._state
            if previous is ChannelState.CLOSED and new is not ChannelState.CLOSED:
                return False
            if expect is not None and previous not in expect:
                return False
            if previous is new:
                return False
            self._state = new
            self._state_cond.notify_all()
        logger.info("Channel state | %s -> %s", previous.value, new.value)
        self._dispatch(ConnectionStateChangedEvent(previous=previous, current=new, error=error))
        return True

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self, credential: str | None) -> bool:
        """Authenticate and connect.

        Without a credential the channel stays DISCONNECTED and makes no
        attempt. A failed handshake moves to RECONNECTING and starts the
        backoff loop.

        Returns:
            ``True`` if the channel is CONNECTED when this returns.
        """
        if not credential:
            logger.info("No credential | channel stays disconnected")
            return False
        with self._state_cond:
            if self._state is ChannelState.CLOSED:
                logger.warning("connect() on closed channel ignored")
                return False
            if self._state is not ChannelState.DISCONNECTED:
                return self._state is ChannelState.CONNECTED
            self._credential = credential
            self._cancel = threading.Event()
        try:
            self._attempt(expect=(ChannelState.DISCONNECTED,))
        except ConnectionLostError as exc:
            self._start_reconnect(exc)
            return False
        return self.connected

    def disconnect(self) -> None:
        """Drop the connection without reconnecting (e.g. credential revoked).

        ``connect`` may be called again afterwards.
        """
        self._cancel.set()
        with self._state_cond:
            if self._state is ChannelState.CLOSED:
                return
            self._credential = ""
        self._transition(ChannelState.DISCONNECTED)
        self._transport.disconnect()

    def close(self) -> None:
        """Shut down for good: cancel backoff, drop the connection. Idempotent."""
        self._cancel.set()
        if not self._transition(ChannelState.CLOSED):
            return
        self._transport.disconnect()
        thread = self._reconnect_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._cap + 1)

    def _attempt(self, *, expect: tuple[ChannelState, ...]) -> None:
        if not self._transition(ChannelState.CONNECTING, expect=expect):
            return
        try:
            self._transport.connect(self._url, self._credential)
        except ConnectionLostError:
            logger.warning("Handshake failed | url=%s", self._url)
            raise
        if not self._transition(ChannelState.CONNECTED, expect=(ChannelState.CONNECTING,)):
            # Closed or disconnected while the handshake was in flight.
            self._transport.disconnect()

    def _on_transport_disconnect(self) -> None:
        if self.state is not ChannelState.CONNECTED:
            return
        logger.warning("Connection dropped | url=%s", self._url)
        self._start_reconnect(ConnectionLostError(f"Connection to {self._url} dropped"))

    def _start_reconnect(self, error: ConnectionLostError) -> None:
        if not self._transition(
            ChannelState.RECONNECTING,
            error,
            expect=(ChannelState.CONNECTED, ChannelState.CONNECTING),
        ):
            return
        with self._state_cond:
            if self._reconnect_thread is not None and self._reconnect_cancel is self._cancel:
                # The running loop picks the new RECONNECTING state up.
                return
            cancel = self._cancel
            thread = threading.Thread(
                target=self._reconnect_loop,
                args=(cancel,),
                name="geoalert-reconnect",
                daemon=True,
            )
            self._reconnect_thread = thread
            self._reconnect_cancel = cancel
            thread.start()

    def _reconnect_loop(self, cancel: threading.Event) -> None:
        attempt = 0
        while True:
            with self._state_cond:
                if cancel.is_set() or self._state is not ChannelState.RECONNECTING:
                    if self._reconnect_cancel is cancel:
                        self._reconnect_thread = None
                        self._reconnect_cancel = None
                    logger.info(
                        "Reconnect loop finished | attempts=%d | state=%s",
                        attempt,
                        self._state.value,
                    )
                    return
            attempt += 1
            delay = reconnect_delay(attempt, self._base, self._cap)
            logger.info("Reconnect scheduled | attempt=%d | delay_s=%.2f", attempt, delay)
            if cancel.wait(delay):
                continue
            try:
                self._attempt(expect=(ChannelState.RECONNECTING,))
            except ConnectionLostError as exc:
                self._transition(ChannelState.RECONNECTING, exc, expect=(ChannelState.CONNECTING,))

    # ------------------------------------------------------------------
    # Inbound dispatch
    # ------------------------------------------------------------------

    def on(self, kind: PushEventKind, handler: Callable[[Any], None]) -> Callable[[], None]:
        """Register *handler* for *kind*; handlers run in registration order.

        Returns:
            A callable that removes the handler.
        """
        with self._handlers_lock:
            self._handlers[kind].append(handler)

        def _off() -> None:
            with self._handlers_lock:
                if handler in self._handlers[kind]:
                    self._handlers[kind].remove(handler)

        return _off

    def _on_transport_event(self, name: str, data: Any) -> None:
        try:
            kind = PushEventKind(name)
        except ValueError:
            logger.debug("Unknown push event ignored | name=%s", name)
            return
        try:
            event = decode_push_event(kind, data)
        except PayloadContractError as exc:
            logger.warning("Push payload rejected | kind=%s | error=%s", name, exc)
            return
        self._dispatch(event)

    def _dispatch(self, event: PushEvent) -> None:
        with self._handlers_lock:
            handlers = list(self._handlers.get(event.kind, ()))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Push handler failed | kind=%s", event.kind.value)

    # ------------------------------------------------------------------
    # Outbound intents
    # ------------------------------------------------------------------

    def emit(self, name: OutboundEvent | str, payload: Any = None) -> bool:
        """Send an event if CONNECTED; otherwise drop it silently.

        Returns:
            ``True`` if the event was handed to the transport.
        """
        wire_name = name.value if isinstance(name, OutboundEvent) else name
        if not self.connected:
            logger.debug("Emit dropped | event=%s | state=%s", wire_name, self.state.value)
            return False
        try:
            self._transport.emit(wire_name, payload)
        except ConnectionLostError as exc:
            logger.warning("Emit dropped | event=%s | error=%s", wire_name, exc)
            return False
        return True

    def acknowledge_alert(self, alert_id: str) -> bool:
        return self.emit(OutboundEvent.ACKNOWLEDGE_ALERT, {"alertId": alert_id})

    def update_zone_status(self, zone_id: str, status: str) -> bool:
        return self.emit(OutboundEvent.UPDATE_ZONE_STATUS, {"zoneId": zone_id, "status": status})

    def process_satellite_data(self, satellite_data_id: str, analysis_type: str) -> bool:
        return self.emit(
            OutboundEvent.PROCESS_SATELLITE_DATA,
            {"satelliteDataId": satellite_data_id, "analysisType": analysis_type},
        )

    def join_session(self, session_id: str) -> bool:
        return self.emit(OutboundEvent.JOIN_SESSION, {"sessionId": session_id})

    def leave_session(self, session_id: str) -> bool:
        return self.emit(OutboundEvent.LEAVE_SESSION, {"sessionId": session_id})

    def update_map_view(self, view: dict[str, Any]) -> bool:
        """Share the current map view (centre, zoom, bounds) with collaborators."""
        return self.emit(OutboundEvent.MAP_VIEW_CHANGED, view)
