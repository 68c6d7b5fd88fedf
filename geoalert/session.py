"""Session wiring: builds and connects every component from configuration.

``GeoAlertSession`` is the composition root. It shares one
``NotificationGate`` across the stores, the push channel and the
matcher, routes push events into the stores, and resynchronises the
alert snapshot after every reconnect.

Usage::

    config = GeoAlertConfig.from_env()
    with GeoAlertSession(config) as session:
        session.start(token)
        session.alerts.acknowledge("42")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from geoalert.catalogs.factory import get_catalog
from geoalert.clients.rest import ApiClient
from geoalert.core.constants import CHANNEL_PUSH_CONNECTION, CHANNEL_SATELLITE_PROCESSING
from geoalert.core.exceptions import PayloadContractError, RemoteFailure
from geoalert.geo.matcher import GeoMatcher
from geoalert.models.events import ChannelState, PushEventKind, to_alert_events
from geoalert.sync.alert_store import AlertStore
from geoalert.sync.event_channel import EventChannel
from geoalert.sync.notification_gate import NotificationGate
from geoalert.sync.zone_store import ZoneStore

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from geoalert.core.config import GeoAlertConfig
    from geoalert.models.events import (
        ConnectionStateChangedEvent,
        PushEvent,
        SatelliteProcessingCompleteEvent,
        SatelliteProcessingErrorEvent,
        ZoneStatusUpdatedEvent,
    )
    from geoalert.sync.transport import Transport

logger = logging.getLogger("geoalert.session")


class GeoAlertSession:
    """All components for one signed-in client.

    Args:
        config: Validated configuration.
        actor: User name recorded on optimistic acknowledgements.
        notifier: User-facing notification sink for the shared gate.
        transport: Push transport override (tests).
        http_transport: httpx transport override (tests).
    """

    def __init__(
        self,
        config: GeoAlertConfig,
        *,
        actor: str = "",
        notifier: Callable[[str, str], None] | None = None,
        transport: Transport | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.gate = NotificationGate(notifier)
        self.api = ApiClient(
            config.api_base_url,
            timeout=config.api_timeout_s,
            transport=http_transport,
        )
        self.alerts = AlertStore(self.api, gate=self.gate, actor=actor)
        self.zones = ZoneStore(self.api, gate=self.gate)
        self.channel = EventChannel(
            config.socket_url,
            transport,
            reconnect_base_s=config.reconnect_base_s,
            reconnect_max_s=config.reconnect_max_s,
        )
        self.matcher = GeoMatcher(
            get_catalog(config.tile_catalog, config, api=self.api),
            gate=self.gate,
            rng=np.random.default_rng(config.fallback_seed),
        )
        self._resync_pending = False
        self._route_events()

    def __enter__(self) -> GeoAlertSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def start(self, credential: str | None) -> bool:
        """Authenticate, load snapshots and open the push channel.

        Snapshot failures are reported through the gate and do not stop
        the push channel from connecting.

        Returns:
            ``True`` if the push channel is connected.
        """
        self.api.set_token(credential or "")
        if credential:
            self._load_snapshots()
        return self.channel.connect(credential)

    def close(self) -> None:
        self.channel.close()
        self.api.close()
        logger.info("Session closed")

    # ------------------------------------------------------------------
    # Push routing
    # ------------------------------------------------------------------

    def _route_events(self) -> None:
        self.channel.on(PushEventKind.NEW_ALERTS, self._on_alert_event)
        self.channel.on(PushEventKind.ALERT_ACKNOWLEDGED, self._on_alert_event)
        self.channel.on(PushEventKind.ZONE_STATUS_UPDATED, self._on_zone_status)
        self.channel.on(PushEventKind.SATELLITE_PROCESSING_COMPLETE, self._on_processing_complete)
        self.channel.on(PushEventKind.SATELLITE_PROCESSING_ERROR, self._on_processing_error)
        self.channel.on(PushEventKind.CONNECTION_STATE_CHANGED, self._on_connection_state)

    def _on_alert_event(self, event: PushEvent) -> None:
        for alert_event in to_alert_events(event):
            self.alerts.apply_event(alert_event)

    def _on_zone_status(self, event: ZoneStatusUpdatedEvent) -> None:
        self.zones.apply_status_event(event)

    def _on_processing_complete(self, event: SatelliteProcessingCompleteEvent) -> None:
        self.gate.report_success(CHANNEL_SATELLITE_PROCESSING)
        logger.info(
            "Satellite data processed | id=%s | confidence=%d%%",
            event.satellite_data_id,
            round(event.confidence * 100),
        )

    def _on_processing_error(self, event: SatelliteProcessingErrorEvent) -> None:
        logger.warning(
            "Satellite processing failed | id=%s | error=%s", event.satellite_data_id, event.error
        )
        self.gate.report_once(CHANNEL_SATELLITE_PROCESSING, "Satellite data processing failed")

    def _on_connection_state(self, event: ConnectionStateChangedEvent) -> None:
        if event.current is ChannelState.RECONNECTING:
            self._resync_pending = True
            if event.error is not None:
                self.gate.report_once(CHANNEL_PUSH_CONNECTION, "Connection to server failed")
        elif event.current is ChannelState.CONNECTED:
            self.gate.report_success(CHANNEL_PUSH_CONNECTION)
            if self._resync_pending:
                # Events sent while disconnected were lost; converge from a snapshot.
                self._resync_pending = False
                self._load_snapshots()

    def _load_snapshots(self) -> None:
        for name, fetch in (("alerts", self.alerts.fetch_snapshot), ("zones", self.zones.fetch_snapshot)):
            try:
                fetch()
            except (RemoteFailure, PayloadContractError) as exc:
                logger.info("Snapshot load deferred | collection=%s | error=%s", name, exc)
