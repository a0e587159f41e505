"""
Tests for EnricherConfig Pydantic model and validate_config helper.

Tests wire-name aliases, language normalization, boolean strictness,
credential detection, range constraints, and error reporting.
"""

import logging

import pytest
from pydantic import ValidationError

from validation.config import EnricherConfig, normalize_language, validate_config


class TestNormalizeLanguage:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("en", "en-US"),
            ("EN", "en-US"),
            ("de", "de-DE"),
            ("fr", "fr-FR"),
            ("pt-BR", "pt-BR"),
            ("en-GB", "en-GB"),
            ("", "en-US"),
            (None, "en-US"),
        ],
    )
    def test_normalize(self, value, expected):
        assert normalize_language(value) == expected


class TestEnricherConfig:
    """Tests for EnricherConfig Pydantic model."""

    # =========================================================================
    # Defaults and aliases
    # =========================================================================

    def test_defaults(self):
        config = EnricherConfig()
        assert config.api_key is None
        assert config.language == "en-US"
        assert config.force_recompute is False
        assert config.request_timeout == 10.0
        assert config.has_credentials is False

    def test_wire_names(self):
        config = EnricherConfig(**{"apiKey": "k" * 32, "language": "de", "forceRecompute": True})
        assert config.api_key == "k" * 32
        assert config.language == "de-DE"
        assert config.language_code == "de"
        assert config.force_recompute is True

    def test_field_names(self):
        config = EnricherConfig(api_key="k" * 32, force_recompute=False)
        assert config.has_credentials

    def test_unknown_keys_ignored(self):
        config, error = validate_config({"apiKey": "k" * 32, "somethingElse": 1})
        assert error is None
        assert config.has_credentials

    def test_frozen(self):
        config = EnricherConfig()
        with pytest.raises(ValidationError):
            config.language = "fr-FR"

    # =========================================================================
    # API key
    # =========================================================================

    def test_blank_key_is_missing(self):
        assert EnricherConfig(apiKey="   ").api_key is None

    def test_bearer_detection(self):
        assert EnricherConfig(apiKey="eyJhbGciOiJIUzI1NiJ9.x.y").is_bearer_token
        assert not EnricherConfig(apiKey="abcdef1234567890").is_bearer_token
        assert not EnricherConfig().is_bearer_token

    def test_non_string_key_rejected(self):
        config, error = validate_config({"apiKey": 12345})
        assert config is None
        assert "api_key" in error or "apiKey" in error

    @pytest.mark.parametrize("key", ["eyJhbGciOi\u00e9xyz", "abc\ndef123456"])
    def test_non_ascii_or_unprintable_key_rejected(self, key):
        config, error = validate_config({"apiKey": key})
        assert config is None
        assert "printable ASCII" in error

    # =========================================================================
    # Booleans
    # =========================================================================

    @pytest.mark.parametrize("value", [True, "true", "1", "yes"])
    def test_truthy_values(self, value):
        assert EnricherConfig(forceRecompute=value).force_recompute is True

    @pytest.mark.parametrize("value", [False, "false", "0", "no", "", None])
    def test_falsy_values(self, value):
        assert EnricherConfig(forceRecompute=value).force_recompute is False

    def test_invalid_boolean_string(self):
        config, error = validate_config({"forceRecompute": "maybe"})
        assert config is None
        assert "Invalid boolean" in error

    def test_integer_boolean_rejected(self):
        config, error = validate_config({"forceRecompute": 1})
        assert config is None

    # =========================================================================
    # Ranges
    # =========================================================================

    @pytest.mark.parametrize("field", ["request_timeout", "store_timeout"])
    def test_timeout_bounds(self, field):
        assert validate_config({field: 0.5})[0] is None
        assert validate_config({field: 61})[0] is None
        assert validate_config({field: 30})[0] is not None

    # =========================================================================
    # Logging
    # =========================================================================

    def test_log_config_masks_key(self, caplog):
        config = EnricherConfig(apiKey="abcdefghijklmnop")
        with caplog.at_level(logging.INFO, logger="tmdb_enricher.config"):
            config.log_config()
        assert "abcd****mnop" in caplog.text
        assert "abcdefghijklmnop" not in caplog.text

    def test_log_config_warns_without_key(self, caplog):
        with caplog.at_level(logging.WARNING, logger="tmdb_enricher.config"):
            EnricherConfig().log_config()
        assert "no API key" in caplog.text
