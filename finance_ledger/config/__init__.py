"""Configuration package."""

from finance_ledger.config.settings import (
    LoggingSettings,
    PlanningSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "LoggingSettings",
    "PlanningSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
