"""Field validation shared by the frozen domain models."""

from __future__ import annotations

from geoalert.core.exceptions import ValidationError


class ModelValidationError(ValueError, ValidationError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_component = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ValidationError.__init__(self, formatted)


def check_range(model: str, field_name: str, value: float, lo: float, hi: float) -> None:
    """Raise `ModelValidationError` if *value* falls outside [lo, hi]."""
    if value < lo or value > hi:
        raise ModelValidationError(model, field_name, value, f"must be between {lo} and {hi}")


def check_non_empty(model: str, field_name: str, value: str) -> None:
    """Raise `ModelValidationError` if *value* is empty or blank."""
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")


def check_point(model: str, field_name: str, point: tuple[float, float]) -> None:
    """Raise `ModelValidationError` unless *point* is a WGS 84 ``(lon, lat)`` pair."""
    if len(point) != 2:
        raise ModelValidationError(model, field_name, point, "must be a (lon, lat) pair")
    lon, lat = point
    if not -180.0 <= lon <= 180.0 or not -90.0 <= lat <= 90.0:
        raise ModelValidationError(model, field_name, point, "must be within WGS 84 bounds")
