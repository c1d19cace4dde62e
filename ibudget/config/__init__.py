"""Configuration package."""

from ibudget.config.settings import (
    AppSettings,
    ExportSettings,
    LedgerSettings,
    SecuritySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ExportSettings",
    "LedgerSettings",
    "SecuritySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
