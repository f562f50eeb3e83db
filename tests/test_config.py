"""Tests for pydantic-settings configuration."""

from pathlib import Path

import pytest

from finance_ledger.config import (
    LoggingSettings,
    PlanningSettings,
    StorageSettings,
    validate_all_settings,
)


class TestStorageSettings:
    """Encrypted file location and ledger cap."""

    def test_defaults(self, monkeypatch):
        """Defaults match the documented file names."""
        monkeypatch.delenv("FINANCE_LEDGER_DATA_DIR", raising=False)
        settings = StorageSettings(_env_file=None)
        assert settings.data_path == Path("config") / ".finance_data"
        assert settings.key_path == Path("config") / ".finance_key"
        assert settings.max_history_entries == 1000
        assert settings.substitute_default_on_decrypt_failure is False

    def test_environment_override(self, monkeypatch, tmp_path):
        """Values come from FINANCE_LEDGER_* variables."""
        monkeypatch.setenv("FINANCE_LEDGER_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("FINANCE_LEDGER_MAX_HISTORY_ENTRIES", "50")
        settings = StorageSettings(_env_file=None)
        assert settings.data_dir == tmp_path
        assert settings.max_history_entries == 50

    def test_file_name_cannot_contain_directory(self):
        """File names are plain names."""
        with pytest.raises(ValueError):
            StorageSettings(data_filename="../escape", _env_file=None)

    def test_cap_must_be_positive(self):
        """A zero-entry ledger is rejected."""
        with pytest.raises(ValueError):
            StorageSettings(max_history_entries=0, _env_file=None)


class TestPlanningAndLogging:
    """Thresholds and log output."""

    def test_planning_defaults(self):
        """Thresholds default to 5 / 15 / 40 and a 24-month window."""
        settings = PlanningSettings(_env_file=None)
        assert settings.rebalance_threshold_pct == 5.0
        assert settings.diagnostic_threshold_pct == 15.0
        assert settings.debt_ratio_threshold_pct == 40.0
        assert settings.forecast_window_months == 24

    def test_log_level_normalized(self):
        """Levels are case-insensitive."""
        assert LoggingSettings(level="debug", _env_file=None).level == "DEBUG"

    def test_unknown_log_level(self):
        """Unknown levels are rejected."""
        with pytest.raises(ValueError):
            LoggingSettings(level="chatty", _env_file=None)

    def test_validate_all_settings(self, monkeypatch):
        """Each section reports validity; failures carry a message."""
        monkeypatch.setenv("FINANCE_LEDGER_LOG_LEVEL", "chatty")
        results = validate_all_settings()
        assert results["storage"] is True
        assert results["planning"] is True
        assert results["logging"] is False
        assert "logging_error" in results
