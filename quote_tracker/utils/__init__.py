"""
Utility modules for the Quote Tracker service.

Provides shared functionality across all services:
- Error types and the Ok/Err result
- Security utilities for tokens and shared secrets
- Price formatting and rounding
- Logging utilities for structured logging
"""

from quote_tracker.utils.errors import (
    QuoteError,
    ValidationError,
    NotFoundError,
    AccessDeniedError,
    DuplicateError,
    TransientStoreError,
    PricingError,
    SequenceExhaustedError,
    Ok,
    Err,
    Result,
)
from quote_tracker.utils.security import (
    generate_access_token,
    is_valid_access_token,
    verify_bearer_secret,
    mask_sensitive_data,
)
from quote_tracker.utils.formatting import format_price, round_half_up
from quote_tracker.utils.logging import (
    setup_logging,
    get_logger,
    RequestLogger,
    AuditLogger,
    ServiceLogger,
    request_logger,
    audit_logger,
)

__all__ = [
    # Errors
    "QuoteError",
    "ValidationError",
    "NotFoundError",
    "AccessDeniedError",
    "DuplicateError",
    "TransientStoreError",
    "PricingError",
    "SequenceExhaustedError",
    "Ok",
    "Err",
    "Result",
    # Security
    "generate_access_token",
    "is_valid_access_token",
    "verify_bearer_secret",
    "mask_sensitive_data",
    # Formatting
    "format_price",
    "round_half_up",
    # Logging
    "setup_logging",
    "get_logger",
    "RequestLogger",
    "AuditLogger",
    "ServiceLogger",
    "request_logger",
    "audit_logger",
]
