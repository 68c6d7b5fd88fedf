"""Client configuration loaded from environment variables.

All configuration values have defaults that work against a local
development server on ``http://localhost:5000``.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out of
    its valid range, so a bad deployment fails at startup rather than at
    the first reconnect or tile search.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from geoalert.core.constants import (
    CATALOG_PLANETARY_COMPUTER,
    CATALOG_REST,
    DEFAULT_SERVER_URL,
    DEFAULT_STAC_URL,
)
from geoalert.core.exceptions import ValidationError

_KNOWN_CATALOGS = (CATALOG_REST, CATALOG_PLANETARY_COMPUTER)


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_component = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class GeoAlertConfig:
    """Immutable client configuration.

    Attributes:
        api_base_url: Base URL of the REST API.
        socket_url: URL of the push channel (socket.io endpoint).
        api_timeout_s: Per-request timeout for REST calls, in seconds.
        reconnect_base_s: First reconnect delay, in seconds.
        reconnect_max_s: Upper bound on a single reconnect delay, in seconds.
        tile_catalog: Tile catalog source (``rest`` or ``planetary_computer``).
        stac_url: STAC API root used by the ``planetary_computer`` catalog.
        fallback_seed: Seed for synthetic fallback tiles (``None`` = random).
    """

    api_base_url: str = DEFAULT_SERVER_URL
    socket_url: str = DEFAULT_SERVER_URL
    api_timeout_s: float = 10.0
    reconnect_base_s: float = 1.0
    reconnect_max_s: float = 30.0
    tile_catalog: str = CATALOG_REST
    stac_url: str = DEFAULT_STAC_URL
    fallback_seed: int | None = None

    @classmethod
    def from_env(cls) -> GeoAlertConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a
                required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``API_TIMEOUT_S=abc``).
        """
        api_base_url = os.getenv("API_BASE_URL", DEFAULT_SERVER_URL)
        seed_raw = os.getenv("FALLBACK_SEED", "")
        config = cls(
            api_base_url=api_base_url,
            socket_url=os.getenv("SOCKET_URL", api_base_url),
            api_timeout_s=float(os.getenv("API_TIMEOUT_S", "10")),
            reconnect_base_s=float(os.getenv("RECONNECT_BASE_S", "1")),
            reconnect_max_s=float(os.getenv("RECONNECT_MAX_S", "30")),
            tile_catalog=os.getenv("TILE_CATALOG", CATALOG_REST),
            stac_url=os.getenv("STAC_URL", DEFAULT_STAC_URL),
            fallback_seed=int(seed_raw) if seed_raw else None,
        )
        _validate(config)
        return config


def _validate(config: GeoAlertConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.api_base_url:
        raise ConfigValidationError("API_BASE_URL", config.api_base_url, "must not be empty")

    if not config.socket_url:
        raise ConfigValidationError("SOCKET_URL", config.socket_url, "must not be empty")

    if config.api_timeout_s <= 0:
        raise ConfigValidationError(
            "API_TIMEOUT_S",
            config.api_timeout_s,
            "must be > 0 (seconds)",
        )

    if config.reconnect_base_s < 0:
        raise ConfigValidationError(
            "RECONNECT_BASE_S",
            config.reconnect_base_s,
            "must be >= 0 (seconds)",
        )

    if config.reconnect_max_s < config.reconnect_base_s:
        raise ConfigValidationError(
            "RECONNECT_MAX_S",
            config.reconnect_max_s,
            f"must be >= RECONNECT_BASE_S ({config.reconnect_base_s})",
        )

    if config.tile_catalog not in _KNOWN_CATALOGS:
        raise ConfigValidationError(
            "TILE_CATALOG",
            config.tile_catalog,
            f"must be one of {', '.join(_KNOWN_CATALOGS)}",
        )

    if config.tile_catalog == CATALOG_PLANETARY_COMPUTER and not config.stac_url:
        raise ConfigValidationError("STAC_URL", config.stac_url, "must not be empty")
