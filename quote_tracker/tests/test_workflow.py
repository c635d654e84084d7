"""
Tests for the status workflow.
"""

from unittest.mock import AsyncMock, patch

import pytest

from quote_tracker.models.quote import QuoteStatus
from quote_tracker.services.quotes.workflow_service import (
    ALLOWED_TRANSITIONS,
    StatusWorkflow,
    apply_transition,
    coerce_status,
    transition_error,
)


class TestApplyTransition:
    """Tests for the pure transition step."""
    
    def test_captures_previous_status(self, store, clock):
        quote = store.seed(status=QuoteStatus.PENDING)
        clock.advance(hours=1)
        
        entry = apply_transition(quote, QuoteStatus.IN_REVIEW, "admin", "Mirando", now=clock())
        
        assert entry.previous_status == QuoteStatus.PENDING
        assert entry.new_status == QuoteStatus.IN_REVIEW
        assert entry.changed_by == "admin"
        assert entry.notes == "Mirando"
        assert entry.quote_id == quote.id
        assert quote.status == QuoteStatus.IN_REVIEW
        assert quote.updated_at == clock()
    
    def test_does_not_attach_entry(self, store):
        quote = store.seed()
        apply_transition(quote, QuoteStatus.QUOTED, "admin")
        assert len(quote.status_history) == 1


class TestCoerceStatus:
    
    def test_values(self):
        assert coerce_status("in_review") == QuoteStatus.IN_REVIEW
        assert coerce_status(QuoteStatus.QUOTED) == QuoteStatus.QUOTED
        assert coerce_status("ARCHIVED") is None


class TestStatusWorkflow:
    """Tests for StatusWorkflow.transition."""
    
    @pytest.mark.anyio
    async def test_transition_appends_history(self, store):
        quote = store.seed()
        workflow = StatusWorkflow(store)
        
        result = await workflow.transition(quote, QuoteStatus.IN_REVIEW, "admin")
        
        assert result.ok
        updated, entry = result.value
        assert updated.status == QuoteStatus.IN_REVIEW
        assert updated.status_history[-1] is entry
        assert [h.new_status for h in updated.status_history] == [
            QuoteStatus.PENDING, QuoteStatus.IN_REVIEW,
        ]
    
    @pytest.mark.anyio
    async def test_same_status_still_recorded(self, store):
        quote = store.seed()
        workflow = StatusWorkflow(store, strict=True)
        
        result = await workflow.transition(quote, QuoteStatus.PENDING, "admin")
        
        assert result.ok
        _, entry = result.value
        assert entry.previous_status == entry.new_status == QuoteStatus.PENDING
    
    @pytest.mark.anyio
    async def test_invalid_status_is_err(self, store):
        quote = store.seed()
        store.update_status_transactionally = AsyncMock()
        
        result = await StatusWorkflow(store).transition(quote, "ARCHIVED", "admin")
        
        assert not result.ok
        assert result.kind == "validation"
        assert result.error.field == "status"
        store.update_status_transactionally.assert_not_awaited()
    
    @pytest.mark.anyio
    async def test_permissive_by_default(self, store):
        quote = store.seed(status=QuoteStatus.COMPLETED)
        result = await StatusWorkflow(store).transition(quote, QuoteStatus.PENDING, "admin")
        assert result.ok
    
    @pytest.mark.anyio
    async def test_strict_rejects_unlisted_edge(self, store):
        quote = store.seed(status=QuoteStatus.COMPLETED)
        
        result = await StatusWorkflow(store, strict=True).transition(
            quote, QuoteStatus.PENDING, "admin",
        )
        
        assert not result.ok
        assert result.detail["current"] == "COMPLETED"
        assert quote.status == QuoteStatus.COMPLETED
        assert len(quote.status_history) == 1
    
    @pytest.mark.anyio
    async def test_strict_allows_listed_edge(self, store):
        quote = store.seed(status=QuoteStatus.CANCELLED)
        result = await StatusWorkflow(store, strict=True).transition(
            quote, QuoteStatus.PENDING, "admin",
        )
        assert result.ok
    
    @pytest.mark.anyio
    async def test_store_rejection_is_err(self, store):
        quote = store.seed(status=QuoteStatus.QUOTED)
        store.update_status_transactionally = AsyncMock(
            side_effect=transition_error(QuoteStatus.COMPLETED, QuoteStatus.IN_REVIEW),
        )
        
        with patch("quote_tracker.services.quotes.workflow_service.audit_logger") as audit:
            result = await StatusWorkflow(store, strict=True).transition(
                quote, QuoteStatus.IN_REVIEW, "admin",
            )
        
        assert not result.ok
        assert result.detail == {"current": "COMPLETED", "allowed": []}
        audit.log_status_change.assert_not_called()
    
    @pytest.mark.anyio
    async def test_passes_edge_check_to_store(self, store):
        quote = store.seed()
        workflow = StatusWorkflow(store, strict=True)
        store.update_status_transactionally = AsyncMock(
            return_value=(quote, quote.status_history[0]),
        )
        
        await workflow.transition(quote, QuoteStatus.IN_REVIEW, "admin")
        
        assert store.update_status_transactionally.call_args.kwargs["allowed"] == workflow.is_allowed
    
    def test_graph_covers_every_status(self):
        assert set(ALLOWED_TRANSITIONS) == set(QuoteStatus)
        assert ALLOWED_TRANSITIONS[QuoteStatus.COMPLETED] == frozenset()
    
    @pytest.mark.anyio
    async def test_audit_logged(self, store):
        quote = store.seed()
        with patch("quote_tracker.services.quotes.workflow_service.audit_logger") as audit:
            await StatusWorkflow(store).transition(quote, QuoteStatus.QUOTED, "admin", "ok")
        
        audit.log_status_change.assert_called_once()
        kwargs = audit.log_status_change.call_args.kwargs
        assert kwargs["previous_status"] == "PENDING"
        assert kwargs["new_status"] == "QUOTED"
