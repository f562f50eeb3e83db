"""
Configuration Management for Finance Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Configuration is centralized here, but components never
read it from a global. The engine is constructed with an explicit
`Settings` instance and hands the relevant section to each component.
`get_settings()` only provides the default instance.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Encrypted state file configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("config"),
        description="Directory holding the encrypted state and key files"
    )
    data_filename: str = Field(
        default=".finance_data",
        description="Name of the encrypted state file"
    )
    key_filename: str = Field(
        default=".finance_key",
        description="Name of the hex-encoded encryption key file"
    )
    max_history_entries: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of history entries kept in the ledger"
    )
    substitute_default_on_decrypt_failure: bool = Field(
        default=False,
        description=(
            "Load an empty ledger when the state file cannot be decrypted. "
            "The unreadable file is quarantined and the event logged as an error."
        )
    )

    @field_validator("data_filename", "key_filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """File names must not smuggle in a directory."""
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Invalid file name: {v!r}")
        return v

    @property
    def data_path(self) -> Path:
        return self.data_dir / self.data_filename

    @property
    def key_path(self) -> Path:
        return self.data_dir / self.key_filename


class PlanningSettings(BaseSettings):
    """Thresholds used by the allocation and apartment analyzers."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_LEDGER_PLANNING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    rebalance_threshold_pct: float = Field(
        default=5.0,
        ge=0.0,
        le=100.0,
        description="Allocation gap (points) that triggers a rebalancing suggestion"
    )
    diagnostic_threshold_pct: float = Field(
        default=15.0,
        ge=0.0,
        le=100.0,
        description="Allocation gap (points) that triggers diagnostic narrative"
    )
    debt_ratio_threshold_pct: float = Field(
        default=40.0,
        ge=0.0,
        description="Debt-to-asset ratio (%) above which debt reduction is advised"
    )
    forecast_window_months: int = Field(
        default=24,
        ge=1,
        le=120,
        description="Months forecast after an apartment's reconciliation date"
    )


class LoggingSettings(BaseSettings):
    """structlog output configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_LEDGER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    json_output: bool = Field(
        default=True,
        description="Render logs as JSON (False renders for a console)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings. Sections can be passed explicitly so that
    tests (or an embedding application) can construct an engine without
    touching the environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    planning: PlanningSettings = Field(default_factory=PlanningSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings sections are properly configured.

    Returns a dict of {section_name: is_valid} plus `<section>_error`
    entries describing failures. Useful for startup checks.
    """
    results = {}

    sections = {
        "storage": StorageSettings,
        "planning": PlanningSettings,
        "logging": LoggingSettings,
    }

    for name, settings_cls in sections.items():
        try:
            settings_cls()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
