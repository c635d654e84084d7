"""
Quote status workflow.

Every transition goes through here so the status change and its history
entry are always written together. Transitions are permissive unless strict
mode is enabled, in which case only the edges in ALLOWED_TRANSITIONS pass.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from quote_tracker.database.base import new_id, utcnow
from quote_tracker.models.quote import Quote, QuoteStatus, QuoteStatusHistory
from quote_tracker.utils.errors import Err, Ok, Result, ValidationError
from quote_tracker.utils.logging import audit_logger

if TYPE_CHECKING:
    from quote_tracker.services.quotes.store import QuoteStore

INITIAL_CHANGED_BY = "system"
INITIAL_NOTE = "Quote created automatically"

ALLOWED_TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    QuoteStatus.PENDING: frozenset({
        QuoteStatus.IN_REVIEW, QuoteStatus.QUOTED, QuoteStatus.CANCELLED,
    }),
    QuoteStatus.IN_REVIEW: frozenset({
        QuoteStatus.PENDING, QuoteStatus.QUOTED, QuoteStatus.CANCELLED,
    }),
    QuoteStatus.QUOTED: frozenset({
        QuoteStatus.IN_REVIEW, QuoteStatus.COMPLETED, QuoteStatus.CANCELLED,
    }),
    QuoteStatus.COMPLETED: frozenset(),
    QuoteStatus.CANCELLED: frozenset({QuoteStatus.PENDING}),
}


def transition_error(current: QuoteStatus, new_status: QuoteStatus) -> ValidationError:
    return ValidationError(
        f"Cannot move quote from {current.value} to {new_status.value}",
        field="status",
        detail={
            "current": current.value,
            "allowed": sorted(s.value for s in ALLOWED_TRANSITIONS[current]),
        },
    )


def coerce_status(value: Any) -> QuoteStatus | None:
    if isinstance(value, QuoteStatus):
        return value
    try:
        return QuoteStatus(str(value).upper())
    except ValueError:
        return None


def apply_transition(
    quote: Quote,
    new_status: QuoteStatus,
    changed_by: str,
    notes: str | None = None,
    now: datetime | None = None,
) -> QuoteStatusHistory:
    """
    Move `quote` to `new_status` and build the matching history entry.
    
    The entry is returned, not attached; the caller persists both in the
    same transaction. `previous_status` is read before the assignment.
    """
    now = now or utcnow()
    previous_status = quote.status
    
    quote.status = new_status
    quote.updated_at = now
    
    return QuoteStatusHistory(
        id=new_id(),
        quote_id=quote.id,
        previous_status=previous_status,
        new_status=new_status,
        changed_by=changed_by,
        notes=notes,
        created_at=now,
    )


def initial_history(quote_id: str, now: datetime | None = None) -> QuoteStatusHistory:
    """History entry recorded when a quote is created."""
    return QuoteStatusHistory(
        id=new_id(),
        quote_id=quote_id,
        previous_status=None,
        new_status=QuoteStatus.PENDING,
        changed_by=INITIAL_CHANGED_BY,
        notes=INITIAL_NOTE,
        created_at=now or utcnow(),
    )


class StatusWorkflow:
    """
    Applies status transitions through the store.
    
    Args:
        store: Persistence used for the atomic update
        strict: Reject transitions outside ALLOWED_TRANSITIONS
    """
    
    def __init__(self, store: "QuoteStore", strict: bool = False):
        self.store = store
        self.strict = strict
    
    def is_allowed(self, current: QuoteStatus, new_status: QuoteStatus) -> bool:
        if not self.strict or current == new_status:
            return True
        return new_status in ALLOWED_TRANSITIONS.get(current, frozenset())
    
    def validate(self, quote: Quote, new_status: Any) -> Result[QuoteStatus]:
        status = coerce_status(new_status)
        if status is None:
            return Err(ValidationError(
                f"Invalid status: {new_status}",
                field="status",
                detail={"allowed": [s.value for s in QuoteStatus]},
            ))
        
        if not self.is_allowed(quote.status, status):
            return Err(transition_error(quote.status, status))
        
        return Ok(status)
    
    async def transition(
        self,
        quote: Quote,
        new_status: Any,
        changed_by: str,
        notes: str | None = None,
    ) -> Result[tuple[Quote, QuoteStatusHistory]]:
        """
        Validate and persist a transition.
        
        `quote` may be out of date; the edge is checked again by the store
        against the status it locks.
        
        Returns Ok((updated_quote, history_entry)) or Err(ValidationError).
        Store failures propagate as exceptions.
        """
        checked = self.validate(quote, new_status)
        if not checked.ok:
            return checked
        
        try:
            updated, entry = await self.store.update_status_transactionally(
                quote.id, checked.value, changed_by, notes, allowed=self.is_allowed,
            )
        except ValidationError as exc:
            return Err(exc)
        
        audit_logger.log_status_change(
            quote_id=updated.id,
            quote_number=updated.quote_number,
            previous_status=entry.previous_status.value if entry.previous_status else None,
            new_status=entry.new_status.value,
            changed_by=changed_by,
            notes=notes,
        )
        
        return Ok((updated, entry))
