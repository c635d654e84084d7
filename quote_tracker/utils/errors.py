"""
Error taxonomy and result types for the quote lifecycle.

Expected outcomes (bad input, unknown quote, duplicate number) are typed
errors carrying enough detail for the caller to act. Store availability
problems are kept apart so callers can decide to retry.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class QuoteError(Exception):
    """Base class for all quote lifecycle errors."""
    
    kind = "quote_error"
    code = "QUOTE_ERROR"
    status_code = 400
    
    def __init__(
        self,
        message: str,
        field: str | None = None,
        detail: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.detail = detail or {}
    
    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error responses."""
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.field:
            payload["field"] = self.field
        if self.detail:
            payload["details"] = self.detail
        return payload


class ValidationError(QuoteError):
    """Malformed input, reported per field."""
    
    kind = "validation"
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(QuoteError):
    """Quote id or access token did not resolve."""
    
    kind = "not_found"
    code = "QUOTE_NOT_FOUND"
    status_code = 404
    
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} {identifier} not found",
            detail={"resource": resource, "id": identifier},
        )
        self.identifier = identifier


class AccessDeniedError(QuoteError):
    """Token or ownership mismatch."""
    
    kind = "access_denied"
    code = "ACCESS_DENIED"
    status_code = 403


class DuplicateError(QuoteError):
    """Unique constraint violated, e.g. quote number collision."""
    
    kind = "duplicate"
    code = "DUPLICATE_ENTRY"
    status_code = 409


class TransientStoreError(QuoteError):
    """Connection-level store failure. Safe to retry."""
    
    kind = "transient_store"
    code = "DATABASE_CONNECTION_ERROR"
    status_code = 503


class SequenceExhaustedError(QuoteError):
    """No quote numbers left in the current day scope."""
    
    kind = "sequence_exhausted"
    code = "QUOTE_NUMBERS_EXHAUSTED"
    status_code = 503


class PricingError(QuoteError):
    """Invalid service/feature combination detected on purpose."""
    
    kind = "pricing"
    code = "PRICING_ERROR"
    status_code = 400


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome."""
    value: T
    
    @property
    def ok(self) -> bool:
        return True
    
    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying a typed error."""
    error: QuoteError
    
    @property
    def ok(self) -> bool:
        return False
    
    @property
    def kind(self) -> str:
        return self.error.kind
    
    @property
    def detail(self) -> dict[str, Any]:
        return self.error.detail
    
    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]
