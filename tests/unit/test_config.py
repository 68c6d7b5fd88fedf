"""Tests for client configuration.

Covers:
- Default values for a local development server
- Loading from environment variables
- Type coercion (string env vars → numeric fields)
- Fail-fast range validation
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from geoalert.core.config import ConfigValidationError, GeoAlertConfig
from geoalert.core.constants import DEFAULT_SERVER_URL, DEFAULT_STAC_URL


class TestGeoAlertConfigDefaults:
    """Verify default configuration values."""

    def test_default_urls(self) -> None:
        cfg = GeoAlertConfig()
        assert cfg.api_base_url == DEFAULT_SERVER_URL
        assert cfg.socket_url == DEFAULT_SERVER_URL
        assert cfg.stac_url == DEFAULT_STAC_URL

    def test_default_backoff(self) -> None:
        cfg = GeoAlertConfig()
        assert cfg.reconnect_base_s == 1.0
        assert cfg.reconnect_max_s == 30.0

    def test_default_catalog(self) -> None:
        assert GeoAlertConfig().tile_catalog == "rest"

    def test_default_seed_is_random(self) -> None:
        assert GeoAlertConfig().fallback_seed is None


class TestGeoAlertConfigFromEnv:
    """Load configuration from environment variables."""

    @patch.dict(os.environ, {}, clear=True)
    def test_empty_env_uses_defaults(self) -> None:
        assert GeoAlertConfig.from_env() == GeoAlertConfig()

    @patch.dict(
        os.environ,
        {
            "API_BASE_URL": "https://alerts.example.org",
            "API_TIMEOUT_S": "2.5",
            "RECONNECT_BASE_S": "0.5",
            "RECONNECT_MAX_S": "8",
            "TILE_CATALOG": "planetary_computer",
            "FALLBACK_SEED": "7",
        },
        clear=True,
    )
    def test_overrides(self) -> None:
        cfg = GeoAlertConfig.from_env()
        assert cfg.api_base_url == "https://alerts.example.org"
        assert cfg.api_timeout_s == 2.5
        assert cfg.reconnect_base_s == 0.5
        assert cfg.reconnect_max_s == 8.0
        assert cfg.tile_catalog == "planetary_computer"
        assert cfg.fallback_seed == 7

    @patch.dict(os.environ, {"API_BASE_URL": "https://alerts.example.org"}, clear=True)
    def test_socket_url_defaults_to_api_url(self) -> None:
        assert GeoAlertConfig.from_env().socket_url == "https://alerts.example.org"

    @patch.dict(os.environ, {"API_TIMEOUT_S": "abc"}, clear=True)
    def test_unparseable_number(self) -> None:
        with pytest.raises(ValueError):
            GeoAlertConfig.from_env()


class TestGeoAlertConfigValidation:
    """Fail-fast range validation."""

    @patch.dict(os.environ, {"API_TIMEOUT_S": "0"}, clear=True)
    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            GeoAlertConfig.from_env()
        assert exc_info.value.key == "API_TIMEOUT_S"

    @patch.dict(os.environ, {"RECONNECT_BASE_S": "-1"}, clear=True)
    def test_base_not_negative(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            GeoAlertConfig.from_env()
        assert exc_info.value.key == "RECONNECT_BASE_S"

    @patch.dict(os.environ, {"RECONNECT_BASE_S": "10", "RECONNECT_MAX_S": "5"}, clear=True)
    def test_cap_not_below_base(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            GeoAlertConfig.from_env()
        assert exc_info.value.key == "RECONNECT_MAX_S"

    @patch.dict(os.environ, {"TILE_CATALOG": "sentinel_hub"}, clear=True)
    def test_unknown_catalog(self) -> None:
        with pytest.raises(ConfigValidationError, match="TILE_CATALOG"):
            GeoAlertConfig.from_env()

    @patch.dict(os.environ, {"TILE_CATALOG": "planetary_computer", "STAC_URL": ""}, clear=True)
    def test_stac_url_required_for_planetary_computer(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            GeoAlertConfig.from_env()
        assert exc_info.value.key == "STAC_URL"
