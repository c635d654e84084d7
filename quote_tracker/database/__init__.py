"""
Database module for the Quote Tracker service.

Provides async engine and session factory builders, lifecycle helpers,
and base model classes.
"""

from quote_tracker.database.base import (
    Base,
    build_engine,
    build_session_factory,
    init_db,
    ping_db,
    close_db,
    utcnow,
)

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "init_db",
    "ping_db",
    "close_db",
    "utcnow",
]
