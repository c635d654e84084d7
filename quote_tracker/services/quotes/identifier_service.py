"""
Quote numbers and client access tokens.

Quote numbers are day-scoped: `COT-YYYYMMDD-NNNN`. The next sequence is read
from the highest number already issued under today's prefix, so two
concurrent submissions can compute the same number. The `quotes.quote_number`
unique constraint catches that, and the submission path re-issues on
`DuplicateError` (see QuoteService.submit).

A day scope holds at most 9999 numbers; past that, submissions fail with
`SequenceExhaustedError` until the date rolls over.
"""

import re
from datetime import date, datetime
from typing import Callable, Protocol

from quote_tracker.database.base import utcnow
from quote_tracker.utils.errors import SequenceExhaustedError
from quote_tracker.utils.security import generate_access_token, is_valid_access_token

SEQUENCE_WIDTH = 4
MAX_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1


class QuoteNumberSource(Protocol):
    """The slice of the store the issuer needs."""
    
    async def latest_quote_number(self, prefix: str) -> str | None:
        ...


class IdentifierIssuer:
    """
    Issues human-readable quote numbers and opaque tracking tokens.
    
    Args:
        prefix: Leading segment of every quote number
        clock: Returns the current UTC time; injectable for tests
    """
    
    def __init__(self, prefix: str = "COT", clock: Callable[[], datetime] = utcnow):
        self.prefix = prefix
        self.clock = clock
        self._pattern = re.compile(
            rf"^{re.escape(prefix)}-(\d{{8}})-(\d{{{SEQUENCE_WIDTH}}})$"
        )
    
    def scope_prefix(self, now: datetime | None = None) -> str:
        """Prefix shared by every number issued on the same day."""
        now = now or self.clock()
        return f"{self.prefix}-{now:%Y%m%d}-"
    
    def format_quote_number(self, sequence: int, now: datetime | None = None) -> str:
        if sequence < 1:
            raise ValueError(f"Sequence must be positive, got {sequence}")
        if sequence > MAX_SEQUENCE:
            raise SequenceExhaustedError(
                f"Quote numbers for {self.scope_prefix(now)}* are exhausted",
                field="quote_number",
                detail={"max_sequence": MAX_SEQUENCE},
            )
        return f"{self.scope_prefix(now)}{sequence:0{SEQUENCE_WIDTH}d}"
    
    async def next_quote_number(self, source: QuoteNumberSource) -> str:
        """
        Next number in today's scope.
        
        Not safe on its own under concurrent creation; callers must persist
        through a unique constraint and retry on collision.
        """
        now = self.clock()
        prefix = self.scope_prefix(now)
        
        last_number = await source.latest_quote_number(prefix)
        sequence = self.extract_sequence(last_number) if last_number else None
        
        return self.format_quote_number((sequence or 0) + 1, now)
    
    def access_token(self) -> str:
        """32 characters from [A-Za-z0-9], from the OS CSPRNG."""
        return generate_access_token()
    
    def is_valid_quote_number(self, quote_number: str) -> bool:
        return bool(self._pattern.match(quote_number or ""))
    
    def is_valid_access_token(self, token: str) -> bool:
        return is_valid_access_token(token)
    
    def extract_date(self, quote_number: str) -> date | None:
        """Issue date embedded in a number, None when malformed."""
        match = self._pattern.match(quote_number or "")
        if not match:
            return None
        try:
            return datetime.strptime(match.group(1), "%Y%m%d").date()
        except ValueError:
            return None
    
    def extract_sequence(self, quote_number: str) -> int | None:
        match = self._pattern.match(quote_number or "")
        return int(match.group(2)) if match else None
