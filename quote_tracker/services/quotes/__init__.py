"""
Quote lifecycle services.

Provides functionality for:
- Feature-breakdown and catalog pricing
- Quote number and access token issuance
- Status transitions with audit history
- Submission, tracking and admin edits
"""

from quote_tracker.services.quotes.identifier_service import IdentifierIssuer
from quote_tracker.services.quotes.pricing_service import PriceEstimate, PricingEngine
from quote_tracker.services.quotes.quote_service import QuoteService
from quote_tracker.services.quotes.store import QuoteFilters, QuoteStore, SQLAlchemyQuoteStore
from quote_tracker.services.quotes.workflow_service import StatusWorkflow

__all__ = [
    "IdentifierIssuer",
    "PriceEstimate",
    "PricingEngine",
    "QuoteService",
    "QuoteFilters",
    "QuoteStore",
    "SQLAlchemyQuoteStore",
    "StatusWorkflow",
]
