"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from ledger_guard.config.settings import (
    EngineSettings,
    OracleSettings,
    get_settings,
    validate_all_settings,
)
from ledger_guard.validation.rules import build_default_registry
from ledger_guard.validation.rules.structural import TRANSACTION_STRUCTURE


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestEngineSettings:
    """Tests for EngineSettings."""

    def test_defaults(self, monkeypatch):
        """Test default thresholds."""
        monkeypatch.delenv("LEDGER_GUARD_MIN_DESCRIPTION_LENGTH", raising=False)
        settings = EngineSettings(_env_file=None)
        assert settings.min_description_length == 3
        assert settings.amount_decimal_places == 2
        assert settings.history_suggestion_limit == 5
        assert settings.log_json is True

    def test_environment_prefix(self, monkeypatch):
        """Test that LEDGER_GUARD_ variables are read."""
        monkeypatch.setenv("LEDGER_GUARD_MIN_DESCRIPTION_LENGTH", "8")
        monkeypatch.setenv("LEDGER_GUARD_DEBUG_MODE", "true")
        settings = EngineSettings(_env_file=None)
        assert settings.min_description_length == 8
        assert settings.debug_mode is True

    def test_bounds(self):
        """Test that out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            EngineSettings(_env_file=None, amount_decimal_places=9)

    def test_settings_reach_rules(self):
        """Test that the registry is built from the given settings."""
        registry = build_default_registry(EngineSettings(_env_file=None, min_description_length=12))
        assert registry.get(TRANSACTION_STRUCTURE).min_description_length == 12


class TestOracleSettings:
    """Tests for OracleSettings."""

    def test_disabled_by_default(self, monkeypatch):
        """Test that the oracle is off unless enabled."""
        monkeypatch.delenv("GEMINI_ENABLED", raising=False)
        settings = OracleSettings()
        assert settings.enabled is False
        assert settings.timeout_seconds == 15.0
        assert settings.max_concurrent_calls == 3

    def test_environment_prefix(self, monkeypatch):
        """Test that GEMINI_ variables are read."""
        monkeypatch.setenv("GEMINI_BATCH_SIZE", "10")
        assert OracleSettings().batch_size == 10

    def test_concurrency_bounds(self):
        """Test that at least one concurrent call is required."""
        with pytest.raises(ValidationError):
            OracleSettings(max_concurrent_calls=0)


class TestValidateAllSettings:
    """Tests for startup checks."""

    def test_all_valid(self, monkeypatch):
        """Test a default configuration."""
        monkeypatch.delenv("GEMINI_ENABLED", raising=False)
        results = validate_all_settings()
        assert results["engine"] is True
        assert results["oracle"] is True

    def test_enabled_oracle_without_key(self, monkeypatch):
        """Test that enabling the oracle without a key is reported, not raised."""
        monkeypatch.setenv("GEMINI_ENABLED", "true")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        results = validate_all_settings()
        assert results["oracle"] is False
        assert "GEMINI_API_KEY" in results["oracle_error"]

    def test_invalid_engine_value_reported(self, monkeypatch):
        """Test that a malformed variable is reported per section."""
        monkeypatch.setenv("LEDGER_GUARD_AMOUNT_DECIMAL_PLACES", "many")
        results = validate_all_settings()
        assert results["engine"] is False
        assert "engine_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
