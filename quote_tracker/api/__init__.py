"""API module for the Quote Tracker service."""

from quote_tracker.api.dependencies import (
    get_app_settings,
    get_dispatcher,
    get_pricing_engine,
    get_quote_service,
    require_cron_secret,
)

__all__ = [
    "get_app_settings",
    "get_dispatcher",
    "get_pricing_engine",
    "get_quote_service",
    "require_cron_secret",
]
