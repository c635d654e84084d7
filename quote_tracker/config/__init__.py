"""Configuration module for the Quote Tracker service."""

from quote_tracker.config.settings import (
    CompanySettings,
    DatabaseSettings,
    EmailSettings,
    NotificationSettings,
    QuoteSettings,
    Settings,
    get_settings,
    settings,
)

__all__ = [
    "CompanySettings",
    "DatabaseSettings",
    "EmailSettings",
    "NotificationSettings",
    "QuoteSettings",
    "Settings",
    "get_settings",
    "settings",
]
