"""
Quote lifecycle API routes.

Notifications are queued as background tasks after the business operation
has committed. The response never waits on mail delivery.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, BackgroundTasks, Query, status

from quote_tracker.api.dependencies import DispatcherDep, QuoteServiceDep
from quote_tracker.models.quote import QuotePriority, QuoteStatus, ServiceType
from quote_tracker.schemas import (
    NoteCreate,
    PriceEstimateResponse,
    QuoteCreatedResponse,
    QuoteFieldUpdate,
    QuoteListResponse,
    QuoteNoteResponse,
    QuoteResponse,
    QuoteSubmission,
    ReminderResponse,
    StatusChangeResponse,
    StatusHistoryResponse,
    StatusUpdate,
    TrackingResponse,
)
from quote_tracker.services.quotes import QuoteFilters
from quote_tracker.utils.errors import ValidationError
from quote_tracker.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def run_notification(
    name: str,
    send: Callable[..., Awaitable[Any]],
    *args: Any,
) -> None:
    """Background wrapper: the outcome only reaches the logs."""
    try:
        outcome = await send(*args)
    except Exception as exc:
        logger.error(
            "notification_task_failed",
            notification=name,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        return
    logger.info("notification_task_completed", notification=name, outcome=repr(outcome))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=QuoteCreatedResponse)
async def submit_quote(
    submission: QuoteSubmission,
    background_tasks: BackgroundTasks,
    service: QuoteServiceDep,
    dispatcher: DispatcherDep,
):
    """Public quote request."""
    result = await service.submit(submission)
    quote, estimate = result.quote, result.estimate
    
    background_tasks.add_task(run_notification, "created", dispatcher.notify_created, quote.id)
    if dispatcher.renderer.is_high_priority(quote):
        background_tasks.add_task(
            run_notification, "high_priority", dispatcher.notify_high_priority, quote.id,
        )
    
    return QuoteCreatedResponse(
        id=quote.id,
        quote_number=quote.quote_number,
        access_token=quote.access_token,
        tracking_url=dispatcher.renderer.tracking_url(quote.access_token),
        estimated_price=quote.estimated_price,
        currency=quote.currency,
        priority=quote.priority,
        status=quote.status,
        estimate=PriceEstimateResponse(
            **estimate.to_dict(),
            additional_cost=estimate.additional_cost,
            priority=quote.priority,
        ),
    )


@router.get("", response_model=QuoteListResponse)
async def list_quotes(
    service: QuoteServiceDep,
    status_filter: QuoteStatus | None = Query(None, alias="status"),
    priority: QuotePriority | None = None,
    service_type: ServiceType | None = None,
    assigned_to: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Admin listing with filters and pagination."""
    result = await service.list_quotes(QuoteFilters(
        status=status_filter,
        priority=priority,
        service_type=service_type,
        assigned_to=assigned_to,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    ))
    return {
        "items": result.items,
        "pagination": vars(result.pagination),
    }


@router.get("/stats")
async def quote_stats(service: QuoteServiceDep):
    """Quote counts per status."""
    return await service.stats()


@router.get("/track/{token}", response_model=TrackingResponse)
async def track_quote(token: str, service: QuoteServiceDep):
    """Client tracking view; the token is the only credential."""
    view = await service.track(token)
    return TrackingResponse.model_validate(view, from_attributes=True)


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(quote_id: str, service: QuoteServiceDep):
    return await service.get(quote_id)


@router.patch("/{quote_id}", response_model=QuoteResponse)
async def update_quote(quote_id: str, update: QuoteFieldUpdate, service: QuoteServiceDep):
    """Edit priority or assignment. Status changes go through /status."""
    return await service.update_fields(quote_id, **update.model_dump(exclude_unset=True))


@router.patch("/{quote_id}/status", response_model=StatusChangeResponse)
async def change_status(
    quote_id: str,
    update: StatusUpdate,
    background_tasks: BackgroundTasks,
    service: QuoteServiceDep,
    dispatcher: DispatcherDep,
):
    """Transition a quote and notify the client when the status moved."""
    change = await service.change_status(
        quote_id,
        update.status,
        update.changed_by,
        update.notes,
    )
    
    notify = update.notify_client and change.changed
    if notify:
        background_tasks.add_task(
            run_notification,
            "status_changed",
            dispatcher.notify_status_changed,
            change.quote.id,
            change.quote.status,
            change.previous_status,
            update.message,
        )
    
    return StatusChangeResponse(
        quote_id=change.quote.id,
        quote_number=change.quote.quote_number,
        previous_status=change.previous_status,
        status=change.quote.status,
        history_entry=StatusHistoryResponse.model_validate(change.history_entry),
        notification_scheduled=notify,
    )


@router.get("/{quote_id}/status")
async def get_status(quote_id: str, service: QuoteServiceDep):
    """Current status with the full transition history."""
    quote = await service.get(quote_id)
    return {
        "quote_id": quote.id,
        "quote_number": quote.quote_number,
        "status": quote.status,
        "history": [
            StatusHistoryResponse.model_validate(entry)
            for entry in sorted(quote.status_history, key=lambda entry: entry.created_at)
        ],
    }


@router.post(
    "/{quote_id}/notes",
    status_code=status.HTTP_201_CREATED,
    response_model=QuoteNoteResponse,
)
async def add_note(quote_id: str, note: NoteCreate, service: QuoteServiceDep):
    return await service.add_note(quote_id, note.author, note.note, note.is_internal)


@router.post("/{quote_id}/reminder", response_model=ReminderResponse)
async def send_reminder(quote_id: str, service: QuoteServiceDep, dispatcher: DispatcherDep):
    """Manual reminder; only PENDING quotes past the threshold qualify."""
    await service.get(quote_id)
    
    sent = await dispatcher.notify_reminder(quote_id)
    if not sent:
        raise ValidationError(
            "No se pudo enviar el recordatorio. La cotización puede no cumplir los criterios.",
            detail={"quote_id": quote_id},
        )
    
    logger.info("manual_reminder_sent", quote_id=quote_id)
    return ReminderResponse(quote_id=quote_id, sent=True)
