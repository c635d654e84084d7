"""API Routes for the Quote Tracker service."""

from quote_tracker.api.routes import cron, pricing, quotes

__all__ = ["cron", "pricing", "quotes"]
