"""Pydantic wire models for REST envelopes and push payloads.

The server is loose about envelope keys (``alerts`` vs ``data``,
``total`` vs ``total_alerts``) and sometimes ships geometry as JSON text
instead of a parsed object. These models absorb that variance once, at
the boundary, and hand out frozen domain dataclasses. Nothing downstream
sniffs payload types.

Every parse goes through ``parse_payload`` so pydantic failures surface
as ``PayloadContractError``.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from geoalert.core.exceptions import PayloadContractError
from geoalert.models.alert import Alert, AlertStats, AlertStatus, Severity
from geoalert.models.events import (
    AlertAcknowledgedEvent,
    NewAlertsEvent,
    PushEvent,
    PushEventKind,
    SatelliteProcessingCompleteEvent,
    SatelliteProcessingErrorEvent,
    ZoneStatusUpdatedEvent,
)
from geoalert.models.tile import Tile, TileMetadata
from geoalert.models.validation import ModelValidationError
from geoalert.models.zone import Zone, ZoneStatus

ModelT = TypeVar("ModelT", bound=BaseModel)

_PRIORITY_LABELS = {"low": 1, "medium": 2, "high": 3, "critical": 4}


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _json_text_to_object(value: Any) -> Any:
    """Decode geometry that arrives as JSON text."""
    if isinstance(value, str | bytes):
        return json.loads(value)
    return value


def _id_to_str(value: Any) -> Any:
    if isinstance(value, int | float):
        return str(value)
    return value


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class PointPayload(_WireModel):
    type: str = "Point"
    coordinates: list[float]

    @field_validator("coordinates")
    @classmethod
    def check_pair(cls, value: list[float]) -> list[float]:
        if len(value) < 2:
            msg = "Point coordinates need [lon, lat]"
            raise ValueError(msg)
        return value

    def to_point(self) -> tuple[float, float]:
        return (float(self.coordinates[0]), float(self.coordinates[1]))


class PolygonPayload(_WireModel):
    type: str = "Polygon"
    coordinates: list[list[list[float]]]

    def exterior(self) -> tuple[tuple[float, float], ...]:
        if not self.coordinates:
            return ()
        return tuple((float(c[0]), float(c[1])) for c in self.coordinates[0])


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


class AlertPayload(_WireModel):
    id: str
    title: str = ""
    description: str = ""
    severity: Severity = Severity.MEDIUM
    status: AlertStatus = AlertStatus.ACTIVE
    location: PointPayload | None = None
    created_at: datetime | None = None
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    resolution: str | None = None

    coerce_id = field_validator("id", mode="before")(_id_to_str)
    decode_location = field_validator("location", mode="before")(_json_text_to_object)

    def to_alert(self) -> Alert:
        return Alert(
            id=self.id,
            title=self.title,
            description=self.description,
            severity=self.severity,
            status=self.status,
            location=self.location.to_point() if self.location else None,
            created_at=self.created_at,
            acknowledged_by=self.acknowledged_by or "",
            acknowledged_at=self.acknowledged_at,
            resolution=self.resolution or "",
        )


class AlertsEnvelope(_WireModel):
    alerts: list[AlertPayload] = Field(
        default_factory=list, validation_alias=AliasChoices("alerts", "data")
    )


class AlertEnvelope(_WireModel):
    alert: AlertPayload


class StatsPayload(_WireModel):
    total: int = Field(0, validation_alias=AliasChoices("total", "total_alerts"))
    active: int = Field(0, validation_alias=AliasChoices("active", "active_alerts"))
    acknowledged: int = Field(
        0, validation_alias=AliasChoices("acknowledged", "acknowledged_alerts")
    )
    resolved: int = Field(0, validation_alias=AliasChoices("resolved", "resolved_alerts"))

    def to_stats(self) -> AlertStats:
        return AlertStats(
            total=self.total,
            active=self.active,
            acknowledged=self.acknowledged,
            resolved=self.resolved,
        )


class StatsEnvelope(_WireModel):
    stats: StatsPayload


# ---------------------------------------------------------------------------
# Zones
# ---------------------------------------------------------------------------


class ZonePayload(_WireModel):
    id: str
    name: str = Field("", validation_alias=AliasChoices("zone_name", "name"))
    geometry: PolygonPayload | None = None
    status: ZoneStatus = ZoneStatus.NORMAL
    priority: int = 0

    coerce_id = field_validator("id", mode="before")(_id_to_str)
    decode_geometry = field_validator("geometry", mode="before")(_json_text_to_object)

    @field_validator("priority", mode="before")
    @classmethod
    def priority_label(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() in _PRIORITY_LABELS:
            return _PRIORITY_LABELS[value.lower()]
        return value

    def to_zone(self) -> Zone:
        return Zone(
            id=self.id,
            name=self.name,
            geometry=self.geometry.exterior() if self.geometry else (),
            status=self.status,
            priority=self.priority,
        )


class ZonesEnvelope(_WireModel):
    zones: list[ZonePayload] = Field(
        default_factory=list, validation_alias=AliasChoices("zones", "data")
    )


# ---------------------------------------------------------------------------
# Tiles
# ---------------------------------------------------------------------------


class TileMetadataPayload(_WireModel):
    resolution: str = ""
    cloud_coverage: float = 0.0
    tile_id: str = ""
    path_row: str = ""
    sun_elevation: float = 0.0

    coerce_resolution = field_validator("resolution", mode="before")(_id_to_str)

    def to_metadata(self) -> TileMetadata:
        return TileMetadata(
            resolution=self.resolution,
            cloud_coverage=self.cloud_coverage,
            tile_id=self.tile_id,
            path_row=self.path_row,
            sun_elevation=self.sun_elevation,
        )


class TilePayload(_WireModel):
    id: str
    satellite_name: str
    acquisition_date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    geometry: PointPayload
    confidence_score: float = 0.0
    data_type: str = ""
    metadata: TileMetadataPayload = Field(default_factory=TileMetadataPayload)

    coerce_id = field_validator("id", mode="before")(_id_to_str)
    decode_geometry = field_validator("geometry", mode="before")(_json_text_to_object)

    def to_tile(self) -> Tile:
        # aoi_covered / coverage_percentage are derived locally, never trusted.
        return Tile(
            id=self.id,
            satellite_name=self.satellite_name,
            acquisition_date=self.acquisition_date,
            geometry=self.geometry.to_point(),
            confidence_score=self.confidence_score,
            metadata=self.metadata.to_metadata(),
            data_type=self.data_type,
        )


class TilesEnvelope(_WireModel):
    tiles: list[TilePayload] = Field(
        default_factory=list, validation_alias=AliasChoices("tiles", "insights", "data")
    )


# ---------------------------------------------------------------------------
# Push payloads
# ---------------------------------------------------------------------------


class NewAlertsPayload(_WireModel):
    alerts: list[AlertPayload] = Field(default_factory=list)


class AlertAcknowledgedPayload(_WireModel):
    alert_id: str = Field("", validation_alias=AliasChoices("alertId", "alert_id"))
    acknowledged_by: str = Field(
        "", validation_alias=AliasChoices("acknowledgedBy", "acknowledged_by")
    )
    acknowledged_at: datetime | None = Field(
        None, validation_alias=AliasChoices("acknowledgedAt", "acknowledged_at")
    )
    alert: AlertPayload | None = None

    coerce_id = field_validator("alert_id", mode="before")(_id_to_str)

    @model_validator(mode="after")
    def require_id(self) -> AlertAcknowledgedPayload:
        if not self.alert_id and self.alert is not None:
            self.alert_id = self.alert.id
        if not self.alert_id:
            msg = "alert:acknowledged payload carries no alert id"
            raise ValueError(msg)
        return self


class ZoneStatusPayload(_WireModel):
    zone_id: str = Field("", validation_alias=AliasChoices("zoneId", "zone_id"))
    status: ZoneStatus | None = None
    zone: ZonePayload | None = None

    coerce_id = field_validator("zone_id", mode="before")(_id_to_str)

    @model_validator(mode="after")
    def fill_from_zone(self) -> ZoneStatusPayload:
        if self.zone is not None:
            self.zone_id = self.zone_id or self.zone.id
            if self.status is None:
                self.status = self.zone.status
        if not self.zone_id or self.status is None:
            msg = "zone:status_updated payload needs a zone id and status"
            raise ValueError(msg)
        return self


class SatelliteCompletePayload(_WireModel):
    satellite_data_id: str = Field(
        "", validation_alias=AliasChoices("satelliteDataId", "satellite_data_id", "id")
    )
    confidence: float = 0.0
    analysis_type: str = Field("", validation_alias=AliasChoices("analysisType", "analysis_type"))

    coerce_id = field_validator("satellite_data_id", mode="before")(_id_to_str)


class SatelliteErrorPayload(_WireModel):
    satellite_data_id: str = Field(
        "", validation_alias=AliasChoices("satelliteDataId", "satellite_data_id", "id")
    )
    error: str = Field("", validation_alias=AliasChoices("error", "message"))

    coerce_id = field_validator("satellite_data_id", mode="before")(_id_to_str)


# ---------------------------------------------------------------------------
# Parsing entry points
# ---------------------------------------------------------------------------


def parse_payload(model: type[ModelT], data: object, context: str) -> ModelT:
    """Validate *data* against *model*.

    Raises:
        PayloadContractError: If the payload does not match.
    """
    try:
        return model.model_validate(data)
    except (ValidationError, ValueError) as exc:
        msg = f"{context}: {exc}"
        raise PayloadContractError(msg) from exc


def _decode_new_alerts(data: object) -> PushEvent:
    payload = parse_payload(NewAlertsPayload, data, PushEventKind.NEW_ALERTS.value)
    return NewAlertsEvent(alerts=tuple(a.to_alert() for a in payload.alerts))


def _decode_acknowledged(data: object) -> PushEvent:
    payload = parse_payload(AlertAcknowledgedPayload, data, PushEventKind.ALERT_ACKNOWLEDGED.value)
    alert = payload.alert.to_alert() if payload.alert else None
    return AlertAcknowledgedEvent(
        alert_id=payload.alert_id,
        acknowledged_by=payload.acknowledged_by or (alert.acknowledged_by if alert else ""),
        acknowledged_at=payload.acknowledged_at or (alert.acknowledged_at if alert else None),
        alert=alert,
    )


def _decode_zone_status(data: object) -> PushEvent:
    payload = parse_payload(ZoneStatusPayload, data, PushEventKind.ZONE_STATUS_UPDATED.value)
    return ZoneStatusUpdatedEvent(
        zone_id=payload.zone_id,
        status=payload.status,  # type: ignore[arg-type]
        zone=payload.zone.to_zone() if payload.zone else None,
    )


def _decode_processing_complete(data: object) -> PushEvent:
    payload = parse_payload(
        SatelliteCompletePayload, data, PushEventKind.SATELLITE_PROCESSING_COMPLETE.value
    )
    return SatelliteProcessingCompleteEvent(
        satellite_data_id=payload.satellite_data_id,
        confidence=payload.confidence,
        analysis_type=payload.analysis_type,
    )


def _decode_processing_error(data: object) -> PushEvent:
    payload = parse_payload(
        SatelliteErrorPayload, data, PushEventKind.SATELLITE_PROCESSING_ERROR.value
    )
    return SatelliteProcessingErrorEvent(
        satellite_data_id=payload.satellite_data_id,
        error=payload.error,
    )


PUSH_DECODERS = {
    PushEventKind.NEW_ALERTS: _decode_new_alerts,
    PushEventKind.ALERT_ACKNOWLEDGED: _decode_acknowledged,
    PushEventKind.ZONE_STATUS_UPDATED: _decode_zone_status,
    PushEventKind.SATELLITE_PROCESSING_COMPLETE: _decode_processing_complete,
    PushEventKind.SATELLITE_PROCESSING_ERROR: _decode_processing_error,
}
"""One decoder per server-pushed ``PushEventKind``."""

_UNDECODED = {k for k in PushEventKind if k.is_server_pushed} - PUSH_DECODERS.keys()
if _UNDECODED:
    raise RuntimeError(f"Push kinds without a decoder: {sorted(k.value for k in _UNDECODED)}")


def decode_push_event(kind: PushEventKind, data: object) -> PushEvent:
    """Decode a raw push payload into its typed event.

    Raises:
        PayloadContractError: If *kind* is not server-pushed or the
            payload does not match.
    """
    decoder = PUSH_DECODERS.get(kind)
    if decoder is None:
        msg = f"{kind.value} is not a server-pushed event"
        raise PayloadContractError(msg)
    try:
        return decoder(data)
    except ModelValidationError as exc:
        msg = f"{kind.value}: {exc}"
        raise PayloadContractError(msg) from exc
