"""
Tests for the quote lifecycle service.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from quote_tracker.config.settings import QuoteSettings, Settings
from quote_tracker.models.quote import QuotePriority, QuoteStatus, ServiceType
from quote_tracker.services.quotes import QuoteFilters, QuoteService
from quote_tracker.utils.errors import (
    AccessDeniedError, DuplicateError, NotFoundError, PricingError,
    SequenceExhaustedError, ValidationError,
)
from quote_tracker.tests.fakes import make_submission


@pytest.fixture
def service(store, issuer, settings):
    return QuoteService(store, issuer=issuer, settings=settings)


class TestSubmit:
    """Tests for quote submission."""
    
    @pytest.mark.anyio
    async def test_landing_page_with_seo(self, service):
        result = await service.submit(
            make_submission(ServiceType.LANDING_PAGE, ["seo-optimization"])
        )
        quote = result.quote
        
        assert result.estimate.additional_cost == 40000
        assert quote.estimated_price == 210000
        assert quote.priority == QuotePriority.MEDIUM
        assert quote.status == QuoteStatus.PENDING
        assert quote.quote_number == "COT-20250314-0001"
        assert len(quote.access_token) == 32
        assert [(f.feature_name, f.feature_cost) for f in quote.features] == [
            ("Optimización SEO", 40000),
        ]
    
    @pytest.mark.anyio
    async def test_initial_history_entry(self, service):
        quote = (await service.submit(make_submission())).quote
        
        assert len(quote.status_history) == 1
        entry = quote.status_history[0]
        assert entry.previous_status is None
        assert entry.new_status == QuoteStatus.PENDING
        assert entry.changed_by == "system"
    
    @pytest.mark.anyio
    async def test_sequential_numbers(self, service):
        first = (await service.submit(make_submission())).quote
        second = (await service.submit(make_submission())).quote
        
        assert first.quote_number == "COT-20250314-0001"
        assert second.quote_number == "COT-20250314-0002"
    
    @pytest.mark.anyio
    async def test_price_fixed_at_creation(self, service):
        quote = (await service.submit(
            make_submission(ServiceType.ECOMMERCE, ["payment-gateway"])
        )).quote
        
        assert quote.estimated_price == 370000 + 130000
        assert quote.priority == QuotePriority.HIGH
    
    @pytest.mark.anyio
    async def test_complexity_bonus_from_requirements(self, service):
        quote = (await service.submit(make_submission(
            ServiceType.LANDING_PAGE,
            additional_requirements="x" * 120,
        ))).quote
        
        assert quote.estimated_price == 170000 + 25500
    
    @pytest.mark.anyio
    async def test_retries_on_number_collision(self, service, store, issuer):
        store.seed(quote_number="COT-20250314-0001")
        issuer.next_quote_number = AsyncMock(
            side_effect=["COT-20250314-0001", "COT-20250314-0002"],
        )
        
        quote = (await service.submit(make_submission())).quote
        
        assert quote.quote_number == "COT-20250314-0002"
        assert store.create_calls == 2
    
    @pytest.mark.anyio
    async def test_gives_up_after_attempt_limit(self, service, store, issuer, settings):
        store.seed(quote_number="COT-20250314-0001")
        issuer.next_quote_number = AsyncMock(return_value="COT-20250314-0001")
        
        with pytest.raises(DuplicateError):
            await service.submit(make_submission())
        
        assert store.create_calls == settings.quotes.number_issue_attempts
    
    @pytest.mark.anyio
    async def test_exhausted_day_is_not_retried(self, service, store):
        store.seed(quote_number="COT-20250314-9999")
        
        with pytest.raises(SequenceExhaustedError):
            await service.submit(make_submission())
        
        assert store.create_calls == 0
    
    @pytest.mark.anyio
    async def test_strict_feature_validation(self, store, issuer):
        strict = Settings(quotes=QuoteSettings(strict_feature_validation=True))
        service = QuoteService(store, issuer=issuer, settings=strict)
        
        with pytest.raises(PricingError):
            await service.submit(make_submission(ServiceType.LANDING_PAGE, ["payment-gateway"]))
        assert store.quotes == {}
    
    @pytest.mark.anyio
    async def test_lenient_mode_prices_unavailable_features(self, service):
        quote = (await service.submit(
            make_submission(ServiceType.LANDING_PAGE, ["payment-gateway"])
        )).quote
        assert quote.estimated_price == 170000 + 80000


class TestChangeStatus:
    
    @pytest.mark.anyio
    async def test_returns_previous_status(self, service, store):
        quote = store.seed(status=QuoteStatus.IN_REVIEW)
        
        change = await service.change_status(quote.id, QuoteStatus.QUOTED, "admin", "Listo")
        
        assert change.previous_status == QuoteStatus.IN_REVIEW
        assert change.quote.status == QuoteStatus.QUOTED
        assert change.changed
        assert change.history_entry.notes == "Listo"
    
    @pytest.mark.anyio
    async def test_same_status_not_changed(self, service, store):
        quote = store.seed(status=QuoteStatus.IN_REVIEW)
        
        change = await service.change_status(quote.id, "IN_REVIEW", "admin")
        
        assert not change.changed
        assert len(change.quote.status_history) == 2
    
    @pytest.mark.anyio
    async def test_unknown_quote(self, service):
        with pytest.raises(NotFoundError):
            await service.change_status("missing", QuoteStatus.QUOTED, "admin")
    
    @pytest.mark.anyio
    async def test_invalid_status(self, service, store):
        quote = store.seed()
        with pytest.raises(ValidationError):
            await service.change_status(quote.id, "ARCHIVED", "admin")
    
    @pytest.mark.anyio
    async def test_priority_not_rederived(self, service, store):
        quote = store.seed(estimated_price=500000, priority=QuotePriority.LOW)
        
        change = await service.change_status(quote.id, QuoteStatus.IN_REVIEW, "admin")
        
        assert change.quote.priority == QuotePriority.LOW


class TestTrack:
    """Tests for the client tracking view."""
    
    @pytest.mark.anyio
    async def test_view(self, service, store, clock):
        quote = store.seed(timeline="1 mes")
        clock.advance(hours=2)
        await service.change_status(quote.id, QuoteStatus.IN_REVIEW, "admin")
        await service.add_note(quote.id, "admin", "Estamos revisando", is_internal=False)
        await service.add_note(quote.id, "admin", "Cliente exigente", is_internal=True)
        
        view = await service.track(quote.access_token)
        
        assert view.quote_number == quote.quote_number
        assert view.status == QuoteStatus.IN_REVIEW
        assert view.timeline == "1 mes"
        assert view.estimated_response_date == quote.created_at + timedelta(hours=48)
        assert [entry.new_status for entry in view.status_history] == [
            QuoteStatus.PENDING, QuoteStatus.IN_REVIEW,
        ]
        assert [note.note for note in view.notes] == ["Estamos revisando"]
    
    @pytest.mark.anyio
    async def test_malformed_token(self, service):
        with pytest.raises(AccessDeniedError):
            await service.track("not-a-token")
    
    @pytest.mark.anyio
    async def test_unknown_token(self, service):
        with pytest.raises(NotFoundError):
            await service.track("Z" * 32)


class TestAdminOperations:
    
    @pytest.mark.anyio
    async def test_update_fields(self, service, store, clock):
        quote = store.seed()
        clock.advance(minutes=5)
        
        updated = await service.update_fields(
            quote.id, priority=QuotePriority.HIGH, assigned_to="lucia",
        )
        
        assert updated.priority == QuotePriority.HIGH
        assert updated.assigned_to == "lucia"
        assert updated.updated_at == clock()
    
    @pytest.mark.anyio
    async def test_update_requires_fields(self, service, store):
        quote = store.seed()
        with pytest.raises(ValidationError):
            await service.update_fields(quote.id)
    
    @pytest.mark.anyio
    async def test_list_and_stats(self, service, store):
        store.seed()
        store.seed(status=QuoteStatus.QUOTED)
        store.seed(status=QuoteStatus.QUOTED)
        
        page = await service.list_quotes(QuoteFilters(status=QuoteStatus.QUOTED, limit=1))
        stats = await service.stats()
        
        assert len(page.items) == 1
        assert page.pagination.total == 2
        assert page.pagination.pages == 2
        assert stats["QUOTED"] == 2
        assert stats["PENDING"] == 1
        assert stats["total"] == 3
