"""Data models and schemas.

Defines the data structures used throughout the package:
- Alert / AlertStats: Alert lifecycle and derived counts
- Zone: Strategic zone polygon with mutable status
- AreaOfInterest / BoundingBox: Validated AOI geometry
- Tile / TileMetadata: Satellite tile footprint with coverage annotations
- events: Push event, alert event, and outbound intent vocabularies
- wire: Pydantic envelopes for REST and push payloads
"""

from geoalert.models.alert import Alert, AlertStats, AlertStatus, Severity
from geoalert.models.aoi import AoiRegion, AreaOfInterest, BoundingBox
from geoalert.models.tile import Tile, TileMetadata, TileSource
from geoalert.models.validation import ModelValidationError
from geoalert.models.zone import Zone, ZoneStatus

__all__ = [
    "Alert",
    "AlertStats",
    "AlertStatus",
    "AoiRegion",
    "AreaOfInterest",
    "BoundingBox",
    "ModelValidationError",
    "Severity",
    "Tile",
    "TileMetadata",
    "TileSource",
    "Zone",
    "ZoneStatus",
]
