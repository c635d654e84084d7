"""
Database base configuration and session management.

Engines and session factories are built from settings by the caller;
nothing connects at import time.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import MetaData, String, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from quote_tracker.config.settings import DatabaseSettings

# Naming convention for consistent constraint names
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """
    Base class for all database models.
    
    Provides common columns and utilities for all entities.
    """
    
    metadata = metadata
    
    # Common columns for all tables
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    
    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


def build_engine(db_settings: DatabaseSettings, echo: bool = False) -> AsyncEngine:
    """Create an async engine, with pooling options only where the driver pools."""
    url = db_settings.async_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)
    return create_async_engine(
        url,
        pool_size=db_settings.pool_size,
        max_overflow=db_settings.max_overflow,
        pool_pre_ping=True,
        echo=echo,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory handed to the quote store."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(bind: AsyncEngine) -> None:
    """Initialize database tables."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_db(bind: AsyncEngine) -> bool:
    """Run a trivial query to check connectivity."""
    async with bind.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def close_db(bind: AsyncEngine) -> None:
    """Close database connections."""
    await bind.dispose()
