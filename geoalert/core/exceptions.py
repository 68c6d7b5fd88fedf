"""Unified exception taxonomy.

Provides a shared base exception hierarchy for the alert-sync and
AOI-matching subsystems. Every domain exception inherits from
``GeoAlertError`` and carries structured context fields that enable
consistent retry decisions, rollback, and user notification.

Taxonomy categories
-------------------
- ``ValidationError``  : input/lifecycle violations, never retryable.
- ``TransientError``   : temporary failures (network, 5xx), retryable.
- ``PermanentError``   : unrecoverable domain failures, not retryable.
- ``ContractError``    : payload/schema drift on the wire, never retryable.

Domain exceptions
-----------------
- ``AlertNotFoundError``    : unknown alert id.
- ``IllegalTransitionError``: backward or post-terminal lifecycle change.
  Merges treat it as a silent no-op.
- ``AlreadyTerminalError``  : a user intent targets a resolved alert.
- ``InvalidGeometryError``  : malformed AOI; no partial AOI is installed.
- ``RemoteFailure``         : a REST call failed; triggers rollback.
- ``CatalogError``          : a tile catalog source failed.
- ``ConnectionLostError``   : the push channel dropped; triggers reconnect.
- ``PayloadContractError``  : a REST or push payload has the wrong shape.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and notification sinks.
"""

from __future__ import annotations


class GeoAlertError(Exception):
    """Base exception for all geoalert-domain errors.

    Attributes:
        message: Human-readable error description.
        component: Component where the error occurred
            (e.g. ``"alert_store"``, ``"geo_matcher"``).
        code: Machine-readable error code (e.g. ``"ALERT_NOT_FOUND"``).
        retryable: Whether the caller may re-issue the operation unchanged.
        correlation_id: Request correlation identifier.
    """

    #: Default component for subclasses (override via class attribute or kwarg).
    default_component: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        component: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.component = component or self.default_component
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "component": self.component,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(GeoAlertError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(GeoAlertError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(GeoAlertError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(GeoAlertError):
    """Payload or schema drift between client and server. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Alert lifecycle
# ---------------------------------------------------------------------------


class AlertNotFoundError(PermanentError):
    """Raised when an operation names an alert id the store has never seen.

    Attributes:
        alert_id: The unknown id.
    """

    default_component = "alert_store"
    default_code = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: str) -> None:
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id!r} not found")


class IllegalTransitionError(ValidationError):
    """Raised when a lifecycle change would move an alert backwards.

    Attributes:
        alert_id: The alert whose transition was refused.
        current: Current status value.
        requested: Requested status value.
    """

    default_component = "alert_store"
    default_code = "ALERT_ILLEGAL_TRANSITION"

    def __init__(self, alert_id: str, current: str, requested: str) -> None:
        self.alert_id = alert_id
        self.current = current
        self.requested = requested
        super().__init__(f"Alert {alert_id!r} cannot move from {current!r} to {requested!r}")


class AlreadyTerminalError(IllegalTransitionError):
    """Raised when acknowledge/resolve targets an already resolved alert."""

    default_code = "ALERT_ALREADY_TERMINAL"


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class InvalidGeometryError(ValidationError):
    """Raised when an AOI document is not a well-formed polygon collection."""

    default_component = "geo_matcher"
    default_code = "INVALID_GEOMETRY"


# ---------------------------------------------------------------------------
# Remote / transport
# ---------------------------------------------------------------------------


class RemoteFailure(TransientError):
    """Raised when a REST call fails (network error or error status).

    Attributes:
        operation: Logical operation name (e.g. ``"acknowledge_alert"``).
        status_code: HTTP status code, or ``None`` for transport errors.
    """

    default_component = "api_client"
    default_code = "REMOTE_FAILURE"

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = True,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        super().__init__(message, retryable=retryable)

    def __str__(self) -> str:
        return f"[{self.operation}] {self.message}"


class ConnectionLostError(TransientError):
    """The push channel lost (or failed to establish) its connection."""

    default_component = "event_channel"
    default_code = "CONNECTION_LOST"


class PayloadContractError(ContractError):
    """A REST response or push payload does not match the expected shape."""

    default_component = "wire"
    default_code = "PAYLOAD_CONTRACT_VIOLATION"


class CatalogError(RemoteFailure):
    """A tile catalog source (REST listing or STAC API) failed."""

    default_component = "tile_catalog"
    default_code = "CATALOG_FAILURE"
