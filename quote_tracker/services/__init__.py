"""
Services module for the Quote Tracker service.

Contains the business logic:
- Quote lifecycle (pricing, identifiers, workflow, persistence)
- Notification delivery
"""

from quote_tracker.services.quotes import QuoteService
from quote_tracker.services.notifications import NotificationDispatcher

__all__ = ["QuoteService", "NotificationDispatcher"]
