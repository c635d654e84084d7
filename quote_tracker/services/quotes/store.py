"""
Quote persistence.

`QuoteStore` is the interface the lifecycle services depend on;
`SQLAlchemyQuoteStore` implements it on async SQLAlchemy. Every method runs
in its own session so background notification tasks never share a session
with the request that scheduled them.
"""

import math
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Protocol

from sqlalchemy import and_, func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from quote_tracker.database.base import new_id, ping_db, utcnow
from quote_tracker.models.quote import (
    Quote, QuoteFeature, QuoteNote, QuotePriority,
    QuoteStatus, QuoteStatusHistory, ServiceType
)
from quote_tracker.services.quotes.workflow_service import (
    apply_transition, initial_history, transition_error
)
from quote_tracker.utils.errors import (
    DuplicateError, NotFoundError, TransientStoreError, ValidationError
)
from quote_tracker.utils.logging import ServiceLogger

UPDATABLE_FIELDS = frozenset({"priority", "assigned_to"})
UNIQUE_FIELDS = ("quote_number", "access_token")

# (locked current status, requested status) -> whether the edge may be taken
TransitionCheck = Callable[[QuoteStatus, QuoteStatus], bool]


@dataclass
class QuoteDraft:
    """Everything needed to persist a new quote."""
    quote_number: str
    access_token: str
    client_name: str
    client_email: str
    service_type: ServiceType
    estimated_price: int
    priority: QuotePriority
    features: list[tuple[str, int]] = field(default_factory=list)
    client_phone: str | None = None
    client_company: str | None = None
    description: str | None = None
    timeline: str | None = None
    budget_range: str | None = None
    additional_requirements: str | None = None


@dataclass
class QuoteFilters:
    status: QuoteStatus | None = None
    priority: QuotePriority | None = None
    service_type: ServiceType | None = None
    assigned_to: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    page: int = 1
    limit: int = 10


@dataclass
class Pagination:
    page: int
    limit: int
    total: int
    pages: int


@dataclass
class QuotePage:
    items: list[Quote]
    pagination: Pagination


def build_quote(draft: QuoteDraft, now: datetime) -> Quote:
    """ORM graph for a new quote: PENDING plus its first history entry."""
    quote_id = new_id()
    quote = Quote(
        id=quote_id,
        quote_number=draft.quote_number,
        access_token=draft.access_token,
        client_name=draft.client_name,
        client_email=draft.client_email,
        client_phone=draft.client_phone,
        client_company=draft.client_company,
        service_type=draft.service_type,
        description=draft.description,
        timeline=draft.timeline,
        budget_range=draft.budget_range,
        additional_requirements=draft.additional_requirements,
        estimated_price=draft.estimated_price,
        currency="ARS",
        status=QuoteStatus.PENDING,
        priority=draft.priority,
        created_at=now,
        updated_at=now,
    )
    quote.features = [
        QuoteFeature(
            id=new_id(),
            quote_id=quote_id,
            position=position,
            feature_name=name,
            feature_cost=cost,
            created_at=now,
        )
        for position, (name, cost) in enumerate(draft.features)
    ]
    quote.notes = []
    quote.status_history = [initial_history(quote_id, now)]
    return quote


def paginate(total: int, page: int, limit: int) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if limit else 0,
    )


class QuoteStore(Protocol):
    """Persistence interface consumed by the lifecycle services."""
    
    async def create(self, draft: QuoteDraft) -> Quote: ...
    
    async def find_by_id(self, quote_id: str) -> Quote | None: ...
    
    async def find_by_token(self, token: str) -> Quote | None: ...
    
    async def update_status_transactionally(
        self,
        quote_id: str,
        new_status: QuoteStatus,
        changed_by: str,
        notes: str | None = None,
        allowed: TransitionCheck | None = None,
    ) -> tuple[Quote, QuoteStatusHistory]: ...
    
    async def find_many(self, filters: QuoteFilters) -> QuotePage: ...
    
    async def latest_quote_number(self, prefix: str) -> str | None: ...
    
    async def update_fields(self, quote_id: str, **fields: Any) -> Quote: ...
    
    async def add_note(
        self,
        quote_id: str,
        author: str,
        note: str,
        is_internal: bool = False,
    ) -> QuoteNote: ...
    
    async def stats(self) -> dict[str, int]: ...
    
    async def ping(self) -> bool: ...


def _duplicate_field(exc: IntegrityError) -> str:
    message = str(exc.orig).lower()
    for name in UNIQUE_FIELDS:
        if name in message:
            return name
    return "unknown"


class SQLAlchemyQuoteStore:
    """
    QuoteStore on async SQLAlchemy.
    
    Unique constraints surface as DuplicateError and connection failures as
    TransientStoreError; other database errors propagate unchanged.
    """
    
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.logger = ServiceLogger("quote_store")
    
    @asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as exc:
            field_name = _duplicate_field(exc)
            self.logger.log_operation_failed(operation, exc, field=field_name)
            raise DuplicateError(
                f"A quote with this {field_name} already exists",
                field=field_name,
            ) from exc
        except (OperationalError, InterfaceError, ConnectionError) as exc:
            self.logger.log_operation_failed(operation, exc)
            raise TransientStoreError("Database unavailable") from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                self.logger.log_operation_failed(operation, exc)
                raise TransientStoreError("Database connection lost") from exc
            raise
    
    async def _get(self, session: AsyncSession, quote_id: str) -> Quote | None:
        result = await session.execute(
            select(Quote)
            .where(Quote.id == quote_id)
            .options(
                selectinload(Quote.features),
                selectinload(Quote.notes),
                selectinload(Quote.status_history),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
    
    async def create(self, draft: QuoteDraft) -> Quote:
        """Insert the quote, its features and the initial history entry."""
        async with self.session_factory() as session:
            async with self._translate_errors("create_quote"):
                async with session.begin():
                    quote = build_quote(draft, utcnow())
                    session.add(quote)
                return await self._get(session, quote.id)
    
    async def find_by_id(self, quote_id: str) -> Quote | None:
        async with self.session_factory() as session:
            async with self._translate_errors("find_by_id"):
                return await self._get(session, quote_id)
    
    async def find_by_token(self, token: str) -> Quote | None:
        async with self.session_factory() as session:
            async with self._translate_errors("find_by_token"):
                result = await session.execute(
                    select(Quote.id).where(Quote.access_token == token)
                )
                quote_id = result.scalar_one_or_none()
                if quote_id is None:
                    return None
                return await self._get(session, quote_id)
    
    async def update_status_transactionally(
        self,
        quote_id: str,
        new_status: QuoteStatus,
        changed_by: str,
        notes: str | None = None,
        allowed: TransitionCheck | None = None,
    ) -> tuple[Quote, QuoteStatusHistory]:
        """
        Update the status and append history in one transaction.
        
        The row is locked so the captured previous status is the one replaced.
        `allowed` is evaluated against that locked status; a rejected edge
        raises ValidationError and nothing is written.
        """
        async with self.session_factory() as session:
            async with self._translate_errors("update_status"):
                async with session.begin():
                    result = await session.execute(
                        select(Quote).where(Quote.id == quote_id).with_for_update()
                    )
                    quote = result.scalar_one_or_none()
                    if quote is None:
                        raise NotFoundError("Quote", quote_id)
                    
                    if allowed is not None and not allowed(quote.status, new_status):
                        raise transition_error(quote.status, new_status)
                    
                    entry = apply_transition(quote, new_status, changed_by, notes)
                    session.add(entry)
                
                return await self._get(session, quote_id), entry
    
    async def find_many(self, filters: QuoteFilters) -> QuotePage:
        conditions = []
        
        if filters.status:
            conditions.append(Quote.status == filters.status)
        if filters.priority:
            conditions.append(Quote.priority == filters.priority)
        if filters.service_type:
            conditions.append(Quote.service_type == filters.service_type)
        if filters.assigned_to:
            conditions.append(Quote.assigned_to == filters.assigned_to)
        if filters.date_from:
            conditions.append(Quote.created_at >= filters.date_from)
        if filters.date_to:
            conditions.append(Quote.created_at <= filters.date_to)
        
        where = and_(True, *conditions)
        page = max(filters.page, 1)
        
        async with self.session_factory() as session:
            async with self._translate_errors("find_many"):
                total_result = await session.execute(
                    select(func.count(Quote.id)).where(where)
                )
                total = total_result.scalar_one()
                
                result = await session.execute(
                    select(Quote)
                    .where(where)
                    .options(selectinload(Quote.features))
                    .order_by(Quote.created_at.desc())
                    .limit(filters.limit)
                    .offset((page - 1) * filters.limit)
                )
                items = list(result.scalars().all())
        
        return QuotePage(items=items, pagination=paginate(total, page, filters.limit))
    
    async def latest_quote_number(self, prefix: str) -> str | None:
        async with self.session_factory() as session:
            async with self._translate_errors("latest_quote_number"):
                result = await session.execute(
                    select(Quote.quote_number)
                    .where(Quote.quote_number.like(f"{prefix}%"))
                    .order_by(Quote.quote_number.desc())
                    .limit(1)
                )
                return result.scalar_one_or_none()
    
    async def update_fields(self, quote_id: str, **fields: Any) -> Quote:
        """Direct update of non-status attributes."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields not updatable: {sorted(unknown)}",
                field=sorted(unknown)[0],
                detail={"allowed": sorted(UPDATABLE_FIELDS)},
            )
        
        async with self.session_factory() as session:
            async with self._translate_errors("update_fields"):
                async with session.begin():
                    quote = await session.get(Quote, quote_id)
                    if quote is None:
                        raise NotFoundError("Quote", quote_id)
                    for key, value in fields.items():
                        setattr(quote, key, value)
                    quote.updated_at = utcnow()
                return await self._get(session, quote_id)
    
    async def add_note(
        self,
        quote_id: str,
        author: str,
        note: str,
        is_internal: bool = False,
    ) -> QuoteNote:
        async with self.session_factory() as session:
            async with self._translate_errors("add_note"):
                async with session.begin():
                    quote = await session.get(Quote, quote_id)
                    if quote is None:
                        raise NotFoundError("Quote", quote_id)
                    now = utcnow()
                    entry = QuoteNote(
                        id=new_id(),
                        quote_id=quote_id,
                        author=author,
                        note=note,
                        is_internal=is_internal,
                        created_at=now,
                    )
                    session.add(entry)
                    quote.updated_at = now
                return entry
    
    async def stats(self) -> dict[str, int]:
        """Quote counts, overall and per status."""
        async with self.session_factory() as session:
            async with self._translate_errors("stats"):
                result = await session.execute(
                    select(Quote.status, func.count(Quote.id)).group_by(Quote.status)
                )
                counts = {status.value: 0 for status in QuoteStatus}
                for status, count in result.all():
                    counts[QuoteStatus(status).value] = count
        
        counts["total"] = sum(counts.values())
        return counts
    
    async def ping(self) -> bool:
        async with self._translate_errors("ping"):
            return await ping_db(self.session_factory.kw["bind"])
