"""Socket transport abstraction for the push channel.

``EventChannel`` owns the connection state machine and reconnect
policy; a ``Transport`` only moves bytes. The concrete
``SocketIOTransport`` wraps a python-socketio client with its built-in
reconnection disabled so backoff stays under ``EventChannel`` control.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import socketio
from socketio import exceptions as sio_exceptions

from geoalert.core.exceptions import ConnectionLostError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger("geoalert.sync.transport")


class Transport(ABC):
    """Bidirectional push connection primitives."""

    @abstractmethod
    def bind(
        self,
        event_names: Iterable[str],
        on_event: Callable[[str, Any], None],
        on_disconnect: Callable[[], None],
    ) -> None:
        """Route inbound *event_names* to *on_event*; report drops to *on_disconnect*.

        Called once, before the first ``connect``.
        """

    @abstractmethod
    def connect(self, url: str, credential: str) -> None:
        """Open the connection, authenticating with *credential*.

        Raises:
            ConnectionLostError: If the handshake fails.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection. Safe to call when not connected."""

    @abstractmethod
    def emit(self, name: str, payload: Any) -> None:
        """Send one event.

        Raises:
            ConnectionLostError: If the connection is not usable.
        """


class SocketIOTransport(Transport):
    """``Transport`` over a threaded ``socketio.Client``.

    Args:
        wait_timeout: Seconds to wait for the handshake.
        client: Pre-built client (tests); one is created if omitted.
    """

    def __init__(self, *, wait_timeout: float = 10.0, client: socketio.Client | None = None) -> None:
        self._wait_timeout = wait_timeout
        self._client = client or socketio.Client(reconnection=False, logger=False)

    def bind(
        self,
        event_names: Iterable[str],
        on_event: Callable[[str, Any], None],
        on_disconnect: Callable[[], None],
    ) -> None:
        for name in event_names:
            self._client.on(name, handler=_forward(name, on_event))

        def _disconnected(*_args: Any) -> None:
            on_disconnect()

        self._client.on("disconnect", handler=_disconnected)

    def connect(self, url: str, credential: str) -> None:
        try:
            self._client.connect(url, auth={"token": credential}, wait_timeout=self._wait_timeout)
        except sio_exceptions.ConnectionError as exc:
            msg = f"Connection to {url} failed: {exc}"
            raise ConnectionLostError(msg, retryable=True) from exc
        logger.info("Socket connected | url=%s | sid=%s", url, self._client.sid)

    def disconnect(self) -> None:
        if self._client.connected:
            self._client.disconnect()

    def emit(self, name: str, payload: Any) -> None:
        try:
            self._client.emit(name, payload)
        except sio_exceptions.SocketIOError as exc:
            msg = f"Emit {name} failed: {exc}"
            raise ConnectionLostError(msg, retryable=True) from exc


def _forward(name: str, on_event: Callable[[str, Any], None]) -> Callable[..., None]:
    def _handler(data: Any = None, *_extra: Any) -> None:
        on_event(name, data)

    return _handler
