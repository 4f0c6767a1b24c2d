"""Configuration package."""

from ledger_guard.config.settings import (
    EngineSettings,
    OracleSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "EngineSettings",
    "OracleSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
