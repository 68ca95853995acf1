"""Configuration package."""

from budgeter.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LocalStoreSettings,
    Settings,
    SyncSettings,
    get_default_currency,
    get_settings,
    get_temp_id_prefix,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LocalStoreSettings",
    "Settings",
    "SyncSettings",
    "get_default_currency",
    "get_settings",
    "get_temp_id_prefix",
    "validate_all_settings",
]
