"""
Data models for the Quote Tracker service.

This module provides SQLAlchemy ORM models for:
- Quotes and their priced features
- Client-visible and internal notes
- The append-only status history
"""

from quote_tracker.models.quote import (
    Quote,
    QuoteFeature,
    QuoteNote,
    QuoteStatusHistory,
    ServiceType,
    QuoteStatus,
    QuotePriority,
)

__all__ = [
    "Quote",
    "QuoteFeature",
    "QuoteNote",
    "QuoteStatusHistory",
    "ServiceType",
    "QuoteStatus",
    "QuotePriority",
]
