"""Configuration package."""

from finance_tracker.config.settings import (
    DEFAULT_MONGODB_URI,
    AppSettings,
    DatabaseSettings,
    ServerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DEFAULT_MONGODB_URI",
    "AppSettings",
    "DatabaseSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
