"""
Quote lifecycle service.

Handles submission, status changes, client tracking and admin edits.
Notifications are not sent from here; the HTTP layer schedules them once
the business operation has committed.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from quote_tracker.config.settings import Settings, settings as default_settings
from quote_tracker.models.quote import Quote, QuoteNote, QuoteStatus, QuoteStatusHistory
from quote_tracker.services.quotes.identifier_service import IdentifierIssuer
from quote_tracker.services.quotes.pricing_service import PriceEstimate, PricingEngine
from quote_tracker.services.quotes.store import QuoteDraft, QuoteFilters, QuotePage, QuoteStore
from quote_tracker.services.quotes.workflow_service import StatusWorkflow
from quote_tracker.utils.errors import (
    AccessDeniedError, DuplicateError, NotFoundError, ValidationError
)
from quote_tracker.utils.logging import ServiceLogger, audit_logger
from quote_tracker.utils.security import mask_sensitive_data

if TYPE_CHECKING:
    from quote_tracker.schemas import QuoteSubmission


@dataclass
class SubmissionResult:
    quote: Quote
    estimate: PriceEstimate


@dataclass
class StatusChange:
    """Outcome of a transition, with the status it replaced."""
    quote: Quote
    history_entry: QuoteStatusHistory
    previous_status: QuoteStatus
    
    @property
    def changed(self) -> bool:
        return self.previous_status != self.quote.status


@dataclass
class TrackingView:
    """What a client holding the access token may see."""
    quote_number: str
    status: QuoteStatus
    priority: Any
    service_type: Any
    estimated_price: int
    currency: str
    timeline: str | None
    features: list[Any]
    created_at: datetime
    updated_at: datetime
    estimated_response_date: datetime
    status_history: list[QuoteStatusHistory]
    notes: list[QuoteNote]


class QuoteService:
    """
    Service for the quote lifecycle.
    
    Provides:
    - Quote submission with pricing and identifier issuance
    - Status transitions with audit history
    - Client tracking by access token
    - Admin edits, notes, listing and counts
    """
    
    def __init__(
        self,
        store: QuoteStore,
        pricing: PricingEngine | None = None,
        issuer: IdentifierIssuer | None = None,
        workflow: StatusWorkflow | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or default_settings
        self.store = store
        self.pricing = pricing or PricingEngine()
        self.issuer = issuer or IdentifierIssuer(self.settings.quotes.number_prefix)
        self.workflow = workflow or StatusWorkflow(
            store, strict=self.settings.quotes.strict_transitions,
        )
        self.logger = ServiceLogger("quote")
    
    def price(self, submission: "QuoteSubmission") -> PriceEstimate:
        """Estimate for a submission, refusing unavailable features in strict mode."""
        project = submission.project
        if self.settings.quotes.strict_feature_validation:
            return self.pricing.checked_estimate(
                project.service_type,
                project.features,
                project.additional_requirements,
            ).unwrap()
        return self.pricing.estimate(
            project.service_type,
            project.features,
            project.additional_requirements,
        )
    
    async def submit(self, submission: "QuoteSubmission") -> SubmissionResult:
        """
        Price and persist a new quote.
        
        The quote number is recomputed and the insert retried when a
        concurrent submission took the same number first.
        
        Raises:
            PricingError: Unavailable features in strict mode
            DuplicateError: Numbers kept colliding past the attempt limit
        """
        start = time.perf_counter()
        client, project = submission.client, submission.project
        
        self.logger.log_operation_start(
            "submit_quote",
            service_type=project.service_type.value,
            feature_count=len(project.features),
        )
        
        estimate = self.price(submission)
        priority = self.pricing.priority(estimate.total)
        attempts = max(self.settings.quotes.number_issue_attempts, 1)
        
        for attempt in range(1, attempts + 1):
            draft = QuoteDraft(
                quote_number=await self.issuer.next_quote_number(self.store),
                access_token=self.issuer.access_token(),
                client_name=client.name,
                client_email=str(client.email),
                client_phone=client.phone,
                client_company=client.company,
                service_type=project.service_type,
                description=project.description,
                timeline=project.timeline,
                budget_range=project.budget_range,
                additional_requirements=project.additional_requirements,
                estimated_price=estimate.total,
                priority=priority,
                features=[(item.name, item.cost) for item in estimate.feature_breakdown],
            )
            try:
                quote = await self.store.create(draft)
                break
            except DuplicateError as exc:
                if attempt == attempts:
                    self.logger.log_operation_failed(
                        "submit_quote", exc, attempts=attempts,
                    )
                    raise
                self.logger.logger.warning(
                    "quote_number_collision",
                    quote_number=draft.quote_number,
                    field=exc.field,
                    attempt=attempt,
                )
        
        self.logger.log_operation_complete(
            "submit_quote",
            duration_ms=(time.perf_counter() - start) * 1000,
            quote_id=quote.id,
            quote_number=quote.quote_number,
            estimated_price=quote.estimated_price,
            priority=quote.priority.value,
        )
        
        return SubmissionResult(quote=quote, estimate=estimate)
    
    async def get(self, quote_id: str) -> Quote:
        quote = await self.store.find_by_id(quote_id)
        if quote is None:
            raise NotFoundError("Quote", quote_id)
        return quote
    
    async def change_status(
        self,
        quote_id: str,
        new_status: QuoteStatus | str,
        changed_by: str,
        notes: str | None = None,
    ) -> StatusChange:
        """
        Transition a quote.
        
        The returned previous status is what the quote held right before the
        update, which is what notification decisions must compare against.
        """
        quote = await self.get(quote_id)
        
        updated, entry = (
            await self.workflow.transition(quote, new_status, changed_by, notes)
        ).unwrap()
        
        return StatusChange(
            quote=updated,
            history_entry=entry,
            previous_status=entry.previous_status,
        )
    
    async def track(self, token: str) -> TrackingView:
        """
        Client tracking view for an access token.
        
        Raises:
            AccessDeniedError: Token is not a well-formed access token
            NotFoundError: No quote carries this token
        """
        if not self.issuer.is_valid_access_token(token):
            audit_logger.log_access_denied("quote_tracking", "malformed_token")
            raise AccessDeniedError("Invalid access token", field="token")
        
        quote = await self.store.find_by_token(token)
        if quote is None:
            self.logger.logger.info("tracking_token_unknown", token=mask_sensitive_data(token))
            raise NotFoundError("Quote", "token")
        
        response_hours = self.settings.quotes.estimated_response_hours
        
        return TrackingView(
            quote_number=quote.quote_number,
            status=quote.status,
            priority=quote.priority,
            service_type=quote.service_type,
            estimated_price=quote.estimated_price,
            currency=quote.currency,
            timeline=quote.timeline,
            features=list(quote.features),
            created_at=quote.created_at,
            updated_at=quote.updated_at,
            estimated_response_date=quote.created_at + timedelta(hours=response_hours),
            status_history=sorted(quote.status_history, key=lambda entry: entry.created_at),
            notes=quote.public_notes,
        )
    
    async def update_fields(self, quote_id: str, **fields: Any) -> Quote:
        """
        Edit priority or assignment.
        
        Priority set here is kept as given; it is never re-derived from the
        estimated price.
        """
        if not fields:
            raise ValidationError("No fields to update")
        
        quote = await self.store.update_fields(quote_id, **fields)
        self.logger.log_operation_complete(
            "update_quote",
            quote_id=quote_id,
            fields=sorted(fields),
        )
        return quote
    
    async def add_note(
        self,
        quote_id: str,
        author: str,
        note: str,
        is_internal: bool = False,
    ) -> QuoteNote:
        return await self.store.add_note(quote_id, author, note, is_internal)
    
    async def list_quotes(self, filters: QuoteFilters) -> QuotePage:
        return await self.store.find_many(filters)
    
    async def stats(self) -> dict[str, int]:
        return await self.store.stats()
