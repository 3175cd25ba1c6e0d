"""Database layer - engine, declarative base and column types."""

from reminder_kernel.db.base import Base, Identifier, UTCDateTime
from reminder_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "Identifier",
    "UTCDateTime",
    "create_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
