"""Configuration package."""

from rental_manager.config.settings import (
    AppSettings,
    FirebaseSettings,
    LedgerSettings,
    LocalStoreSettings,
    ReminderSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FirebaseSettings",
    "LedgerSettings",
    "LocalStoreSettings",
    "ReminderSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
