"""Authoritative in-memory alert collection.

``AlertStore`` is the only writer of alert state. Two independent
channels feed it:

- **Snapshots** (``fetch_snapshot`` / ``load_snapshot``) replace the
  collection wholesale.
- **Push events** (``apply_event``) insert new alerts and advance
  lifecycle stages.

Both go through one forward-only merge rule: a value is only ever
replaced by one at the same or a later lifecycle stage. The rule is
idempotent and commutative, so arrival order between the channels can
delay convergence but never corrupt state.

User intents (``acknowledge`` / ``resolve``) are optimistic: applied
locally, confirmed remotely, and rolled back if the remote call fails.
Failures are reported once per episode through ``NotificationGate``.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from geoalert.core.constants import (
    CHANNEL_ALERT_ACKNOWLEDGE,
    CHANNEL_ALERT_CREATE,
    CHANNEL_ALERT_RESOLVE,
    CHANNEL_ALERTS_FETCH,
)
from geoalert.core.exceptions import (
    AlertNotFoundError,
    AlreadyTerminalError,
    IllegalTransitionError,
    PayloadContractError,
    RemoteFailure,
)
from geoalert.models.alert import Alert, AlertStats, AlertStatus
from geoalert.models.events import AlertAcknowledged, AlertCreated, AlertResolved
from geoalert.models.validation import ModelValidationError
from geoalert.sync.notification_gate import NotificationGate
from geoalert.sync.optimistic import OptimisticMutator

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from geoalert.clients.rest import ApiClient
    from geoalert.models.alert import Severity
    from geoalert.models.events import AlertEvent

logger = logging.getLogger("geoalert.sync.alert_store")


def _later_stage(older: Alert, newer: Alert) -> Alert:
    """Keep *newer* unless *older* is further along the lifecycle."""
    return older if older.status.rank > newer.status.rank else newer


class AlertStore:
    """Owns the alert collection and its lifecycle state machine.

    Args:
        api: REST client used by ``fetch_snapshot``, ``acknowledge``,
            ``resolve`` and ``create_alert``. Optional for purely
            event-driven use.
        gate: Failure notification gate (a private one is created if omitted).
        actor: Name recorded as ``acknowledged_by`` on optimistic acknowledgements.
    """

    def __init__(
        self,
        api: ApiClient | None = None,
        *,
        gate: NotificationGate | None = None,
        actor: str = "",
    ) -> None:
        self._api = api
        self._gate = gate or NotificationGate()
        self._actor = actor
        self._alerts: dict[str, Alert] = {}
        self._cond = threading.Condition(threading.RLock())
        self._observers: list[Callable[[tuple[Alert, ...], AlertStats], None]] = []
        self._mutator: OptimisticMutator[str, Alert] = OptimisticMutator(
            self._cond,
            self._get,
            self._put,
            on_change=self._notify,
            prefer=_later_stage,
        )

    # ------------------------------------------------------------------
    # Snapshot channel
    # ------------------------------------------------------------------

    def fetch_snapshot(self, **filters: str) -> tuple[Alert, ...]:
        """Fetch all alerts over REST and merge them with ``load_snapshot``.

        Raises:
            RemoteFailure: If the request fails.
            PayloadContractError: If the response has the wrong shape.
        """
        api = self._require_api()
        try:
            alerts = api.list_alerts(**filters)
        except (RemoteFailure, PayloadContractError) as exc:
            self._report_failure(CHANNEL_ALERTS_FETCH, "Failed to load alerts", exc)
            raise
        self._gate.report_success(CHANNEL_ALERTS_FETCH)
        self.load_snapshot(alerts)
        return self.alerts()

    def load_snapshot(self, alerts: Iterable[Alert]) -> None:
        """Replace the collection with *alerts*, keeping newer local stages.

        For each incoming alert, a locally held value at a later lifecycle
        stage wins (a stale fetch cannot revive an acknowledged alert).
        Alerts missing from the snapshot are dropped unless a mutation on
        them is still in flight.
        """
        kept_local = 0
        with self._cond:
            merged: dict[str, Alert] = {}
            for incoming in alerts:
                self._mutator.record_authoritative(incoming.id, incoming)
                local = self._alerts.get(incoming.id)
                if local is not None and local.status.rank > incoming.status.rank:
                    merged[incoming.id] = local
                    kept_local += 1
                else:
                    merged[incoming.id] = incoming
            for alert_id in self._mutator.pending_keys():
                if alert_id not in merged and alert_id in self._alerts:
                    merged[alert_id] = self._alerts[alert_id]
            self._alerts = merged
            total = len(merged)
        logger.info("Snapshot loaded | alerts=%d | kept_local=%d", total, kept_local)
        self._notify()

    # ------------------------------------------------------------------
    # Push channel
    # ------------------------------------------------------------------

    def apply_event(self, event: AlertEvent) -> bool:
        """Apply a push-delivered alert event.

        Re-delivered creations, duplicate and backward transitions, and
        events for unknown ids are ignored.

        Returns:
            ``True`` if the collection changed.
        """
        with self._cond:
            if isinstance(event, AlertCreated):
                changed = self._apply_created(event)
            elif isinstance(event, AlertAcknowledged):
                changed = self._apply_transition(
                    event.alert_id,
                    AlertStatus.ACKNOWLEDGED,
                    lambda a: a.acknowledged(by=event.acknowledged_by, at=event.acknowledged_at),
                )
            elif isinstance(event, AlertResolved):
                changed = self._apply_transition(
                    event.alert_id,
                    AlertStatus.RESOLVED,
                    lambda a: a.resolved(event.resolution),
                )
            else:
                msg = f"Unsupported alert event: {type(event).__name__}"
                raise TypeError(msg)
        if changed:
            self._notify()
        return changed

    def _apply_created(self, event: AlertCreated) -> bool:
        alert = event.alert
        if alert.id in self._alerts:
            logger.debug("Duplicate creation ignored | alert_id=%s", alert.id)
            return False
        if alert.status is AlertStatus.RESOLVED:
            logger.warning("Creation of resolved alert ignored | alert_id=%s", alert.id)
            return False
        self._alerts = {alert.id: alert, **self._alerts}
        logger.info(
            "Alert created | alert_id=%s | severity=%s", alert.id, alert.severity.value
        )
        return True

    def _apply_transition(
        self,
        alert_id: str,
        target: AlertStatus,
        transition: Callable[[Alert], Alert],
    ) -> bool:
        current = self._alerts.get(alert_id)
        if current is None:
            logger.debug("Transition for unknown alert ignored | alert_id=%s", alert_id)
            return False
        self._record_server_transition(alert_id, current, target, transition)
        try:
            updated = transition(current)
        except IllegalTransitionError:
            logger.debug(
                "Transition ignored | alert_id=%s | current=%s | requested=%s",
                alert_id,
                current.status.value,
                target.value,
            )
            return False
        self._alerts[alert_id] = updated
        logger.info("Alert transitioned | alert_id=%s | status=%s", alert_id, target.value)
        return True

    def _record_server_transition(
        self,
        alert_id: str,
        current: Alert,
        target: AlertStatus,
        transition: Callable[[Alert], Alert],
    ) -> None:
        """Record the server's view of an alert with a mutation in flight.

        The event applies to the optimistic value when it can, else to the
        value held before the mutation, so an acknowledgement that arrives
        during a pending resolve survives a failed resolve.
        """
        prior = self._mutator.prior(alert_id)
        if prior is None:
            return
        for base in (current, prior):
            try:
                self._mutator.record_authoritative(alert_id, transition(base))
            except IllegalTransitionError:
                continue
            return
        logger.debug(
            "Server transition already reflected | alert_id=%s | requested=%s",
            alert_id,
            target.value,
        )

    # ------------------------------------------------------------------
    # User intents
    # ------------------------------------------------------------------

    def acknowledge(self, alert_id: str) -> Alert:
        """Optimistically acknowledge an alert and confirm over REST.

        An already acknowledged alert is returned unchanged without a
        remote call.

        Raises:
            AlertNotFoundError: If the id is unknown.
            AlreadyTerminalError: If the alert is resolved.
            RemoteFailure: If the remote call fails (local state rolled back).
        """
        api = self._require_api()
        try:
            alert = self._mutator.run(
                alert_id,
                lambda a: a.acknowledged(by=self._actor),
                lambda _a: api.acknowledge_alert(alert_id),
            )
        except AlreadyTerminalError:
            raise
        except IllegalTransitionError:
            logger.debug("Acknowledge is a no-op | alert_id=%s", alert_id)
            return self._snapshot_of(alert_id)
        except RemoteFailure as exc:
            self._report_failure(CHANNEL_ALERT_ACKNOWLEDGE, "Failed to acknowledge alert", exc)
            raise
        self._gate.report_success(CHANNEL_ALERT_ACKNOWLEDGE)
        logger.info("Alert acknowledged | alert_id=%s", alert_id)
        return alert

    def resolve(self, alert_id: str, resolution: str = "") -> Alert:
        """Optimistically resolve an alert (from active or acknowledged).

        Raises:
            AlertNotFoundError: If the id is unknown.
            AlreadyTerminalError: If the alert is already resolved.
            RemoteFailure: If the remote call fails (local state rolled back).
        """
        api = self._require_api()
        try:
            alert = self._mutator.run(
                alert_id,
                lambda a: a.resolved(resolution),
                lambda _a: api.resolve_alert(alert_id, resolution),
            )
        except RemoteFailure as exc:
            self._report_failure(CHANNEL_ALERT_RESOLVE, "Failed to resolve alert", exc)
            raise
        self._gate.report_success(CHANNEL_ALERT_RESOLVE)
        logger.info("Alert resolved | alert_id=%s", alert_id)
        return alert

    def create_alert(self, draft: Alert) -> Alert:
        """Create an alert over REST and insert the server's copy first.

        Raises:
            ModelValidationError: If *draft* is not ``active``.
            RemoteFailure: If the request fails.
        """
        if draft.status is not AlertStatus.ACTIVE:
            raise ModelValidationError("Alert", "status", draft.status.value, "new alerts must be active")
        api = self._require_api()
        try:
            created = api.create_alert(draft)
        except (RemoteFailure, PayloadContractError) as exc:
            self._report_failure(CHANNEL_ALERT_CREATE, "Failed to create alert", exc)
            raise
        self._gate.report_success(CHANNEL_ALERT_CREATE)
        self.apply_event(AlertCreated(created))
        return self._snapshot_of(created.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def alerts(self) -> tuple[Alert, ...]:
        with self._cond:
            return tuple(self._alerts.values())

    def by_id(self, alert_id: str) -> Alert | None:
        with self._cond:
            return self._alerts.get(alert_id)

    def by_severity(self, severity: Severity) -> list[Alert]:
        with self._cond:
            return [a for a in self._alerts.values() if a.severity is severity]

    def active_alerts(self) -> list[Alert]:
        with self._cond:
            return [a for a in self._alerts.values() if a.status is AlertStatus.ACTIVE]

    def stats(self) -> AlertStats:
        """Recount the collection. Never cached."""
        with self._cond:
            return AlertStats.from_alerts(self._alerts.values())

    def is_pending(self, alert_id: str) -> bool:
        """Whether an acknowledge/resolve on *alert_id* is still in flight."""
        with self._cond:
            return self._mutator.is_pending(alert_id)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(
        self, observer: Callable[[tuple[Alert, ...], AlertStats], None]
    ) -> Callable[[], None]:
        """Register *observer*; it is called after every change.

        Returns:
            A zero-argument callable that unsubscribes.
        """
        with self._cond:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._cond:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def _notify(self) -> None:
        with self._cond:
            observers = list(self._observers)
            alerts = tuple(self._alerts.values())
        stats = AlertStats.from_alerts(alerts)
        for observer in observers:
            observer(alerts, stats)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, alert_id: str) -> Alert:
        alert = self._alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def _put(self, alert_id: str, alert: Alert) -> None:
        self._alerts[alert_id] = alert

    def _snapshot_of(self, alert_id: str) -> Alert:
        with self._cond:
            return self._get(alert_id)

    def _require_api(self) -> ApiClient:
        if self._api is None:
            msg = "AlertStore has no ApiClient; pass one to use REST operations"
            raise RuntimeError(msg)
        return self._api

    def _report_failure(self, channel_key: str, message: str, exc: Exception) -> None:
        logger.warning("%s | channel=%s | error=%s", message, channel_key, exc)
        self._gate.report_once(channel_key, message)
