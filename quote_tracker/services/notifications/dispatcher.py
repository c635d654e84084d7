"""
Notification dispatch for quote lifecycle events.

The dispatcher is an explicit service object: build one per application
with its store and transport, and hand it to whoever needs it. Sends are
best effort. A message that cannot be delivered after the retry budget is
reported as False and never fails the operation that triggered it.
"""

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from quote_tracker.config.settings import Settings, settings as default_settings
from quote_tracker.database.base import utcnow
from quote_tracker.models.quote import Quote, QuoteStatus
from quote_tracker.services.notifications.mail_transport import (
    EmailMessage, MailTransport, build_transport
)
from quote_tracker.services.notifications.templates import RenderedTemplate, TemplateRenderer
from quote_tracker.services.quotes.store import QuoteFilters, QuoteStore
from quote_tracker.utils.logging import ServiceLogger


@dataclass
class CreatedNotification:
    """Outcome of the submission emails. Partial failure is a normal outcome."""
    client_notified: bool
    admin_notified: bool
    
    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


@dataclass
class SweepResult:
    processed: int = 0
    successful: int = 0
    failed: int = 0
    
    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _not_sent(sent: Any) -> bool:
    return sent is not True


class NotificationDispatcher:
    """
    Renders and sends lifecycle emails.
    
    Args:
        store: Where quotes are loaded from
        transport: Mail transport used for every send
        settings: Retry, threshold and batching configuration
        renderer: Template renderer; built from settings when omitted
        sleep: Awaitable sleep used for backoff and batch pauses
        clock: Current UTC time, for reminder age checks
    """
    
    def __init__(
        self,
        store: QuoteStore,
        transport: MailTransport,
        settings: Settings | None = None,
        renderer: TemplateRenderer | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or default_settings
        self.store = store
        self.transport = transport
        self.renderer = renderer or TemplateRenderer(self.settings)
        self.sleep = sleep
        self.clock = clock
        self.logger = ServiceLogger("notifications")
    
    @property
    def config(self):
        return self.settings.notifications
    
    @property
    def admin_address(self) -> str:
        return self.settings.email.admin_address
    
    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        self.logger.logger.warning(
            "email_send_retry",
            attempt=retry_state.attempt_number,
            next_delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=repr(outcome.exception()) if outcome and outcome.failed else None,
        )
    
    def _give_up(self, retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        self.logger.logger.error(
            "email_send_exhausted",
            attempts=retry_state.attempt_number,
            error=repr(outcome.exception()) if outcome and outcome.failed else None,
        )
        return False
    
    async def send_with_retry(self, message: EmailMessage, max_retries: int | None = None) -> bool:
        """
        Send with bounded exponential backoff.
        
        `max_retries` is the total number of attempts. The delay starts at
        the configured initial delay and doubles after each failed attempt.
        A False result and a raised exception both count as failures.
        
        Returns:
            True once an attempt succeeds, False after the last attempt fails
        """
        attempts = max(max_retries if max_retries is not None else self.config.max_retries, 1)
        
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=self.config.initial_retry_delay_seconds,
                exp_base=2,
                max=self.config.max_retry_delay_seconds,
            ),
            retry=retry_if_result(_not_sent) | retry_if_exception_type(Exception),
            before_sleep=self._log_retry,
            retry_error_callback=self._give_up,
            sleep=self.sleep,
        )
        return await retrying(self.transport.send, message)
    
    def _message(self, to: str, template: RenderedTemplate) -> EmailMessage:
        return EmailMessage(to=to, subject=template.subject, html=template.html, text=template.text)
    
    async def _load(self, quote_id: str, operation: str) -> Quote | None:
        quote = await self.store.find_by_id(quote_id)
        if quote is None:
            self.logger.logger.warning(f"{operation}_quote_missing", quote_id=quote_id)
        return quote
    
    async def notify_created(self, quote_id: str) -> CreatedNotification:
        """Client confirmation and admin notice, sent independently."""
        quote = await self._load(quote_id, "notify_created")
        if quote is None:
            return CreatedNotification(client_notified=False, admin_notified=False)
        
        client_sent, admin_sent = await asyncio.gather(
            self.send_with_retry(
                self._message(quote.client_email, self.renderer.client_confirmation(quote))
            ),
            self.send_with_retry(
                self._message(self.admin_address, self.renderer.admin_notification(quote))
            ),
        )
        
        outcome = CreatedNotification(client_notified=client_sent, admin_notified=admin_sent)
        self.logger.log_operation_complete(
            "notify_created",
            quote_id=quote.id,
            quote_number=quote.quote_number,
            **outcome.to_dict(),
        )
        return outcome
    
    async def notify_status_changed(
        self,
        quote_id: str,
        new_status: QuoteStatus,
        previous_status: QuoteStatus | None = None,
        message: str | None = None,
    ) -> bool:
        """
        Tell the client about a status change.
        
        `previous_status` must be the status before the transition was
        applied; nothing is sent when it equals `new_status`.
        """
        if previous_status is not None and QuoteStatus(previous_status) == QuoteStatus(new_status):
            self.logger.logger.info(
                "status_notification_skipped",
                quote_id=quote_id,
                status=QuoteStatus(new_status).value,
            )
            return False
        
        quote = await self._load(quote_id, "notify_status_changed")
        if quote is None:
            return False
        
        sent = await self.send_with_retry(
            self._message(
                quote.client_email,
                self.renderer.status_update(quote, new_status, message),
            )
        )
        self.logger.log_operation_complete(
            "notify_status_changed",
            quote_id=quote.id,
            new_status=QuoteStatus(new_status).value,
            sent=sent,
        )
        return sent
    
    def is_reminder_due(self, quote: Quote, now: datetime | None = None) -> bool:
        """Still PENDING and older than the reminder threshold."""
        now = now or self.clock()
        threshold = timedelta(hours=self.config.reminder_threshold_hours)
        return quote.status == QuoteStatus.PENDING and now - quote.created_at >= threshold
    
    async def notify_reminder(self, quote_id: str) -> bool:
        quote = await self._load(quote_id, "notify_reminder")
        if quote is None or not self.is_reminder_due(quote):
            return False
        
        return await self.send_with_retry(
            self._message(quote.client_email, self.renderer.reminder(quote))
        )
    
    async def notify_high_priority(self, quote_id: str) -> bool:
        """Admin escalation for quotes above the high-priority threshold."""
        quote = await self._load(quote_id, "notify_high_priority")
        if quote is None or not self.renderer.is_high_priority(quote):
            return False
        
        return await self.send_with_retry(
            self._message(self.admin_address, self.renderer.admin_notification(quote))
        )
    
    async def bulk_reminder_sweep(self) -> SweepResult:
        """
        Remind every stale PENDING quote.
        
        Reminders go out in fixed-size concurrent batches with a pause
        between batches. A failing reminder is counted and the sweep carries
        on with the rest.
        """
        self.logger.log_operation_start("reminder_sweep")
        
        cutoff = self.clock() - timedelta(hours=self.config.reminder_threshold_hours)
        page = await self.store.find_many(QuoteFilters(
            status=QuoteStatus.PENDING,
            date_to=cutoff,
            page=1,
            limit=self.config.reminder_sweep_limit,
        ))
        candidates = page.items
        batch_size = max(self.config.reminder_batch_size, 1)
        result = SweepResult()
        
        for start in range(0, len(candidates), batch_size):
            batch = candidates[start:start + batch_size]
            outcomes = await asyncio.gather(
                *(self.notify_reminder(quote.id) for quote in batch),
                return_exceptions=True,
            )
            
            for quote, outcome in zip(batch, outcomes):
                result.processed += 1
                if outcome is True:
                    result.successful += 1
                    continue
                result.failed += 1
                if isinstance(outcome, BaseException):
                    self.logger.log_operation_failed("reminder", outcome, quote_id=quote.id)
            
            if start + batch_size < len(candidates):
                await self.sleep(self.config.reminder_batch_pause_seconds)
        
        self.logger.log_operation_complete("reminder_sweep", **result.to_dict())
        return result


def build_dispatcher(store: QuoteStore, settings: Settings | None = None) -> NotificationDispatcher:
    """Dispatcher wired to the transport the email settings call for."""
    settings = settings or default_settings
    return NotificationDispatcher(
        store=store,
        transport=build_transport(settings.email),
        settings=settings,
    )
