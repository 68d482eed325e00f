"""Persistence layer: SQLAlchemy models and session helpers."""

from .models import Base, Source, Snapshot, ChangeEvent, FETCH_SUCCESS, FETCH_ERROR
from .connection import (
    create_db_engine,
    create_session_factory,
    create_tables,
    drop_tables,
    session_scope,
    check_connection,
    init_db,
)

__all__ = [
    "Base",
    "Source",
    "Snapshot",
    "ChangeEvent",
    "FETCH_SUCCESS",
    "FETCH_ERROR",
    "create_db_engine",
    "create_session_factory",
    "create_tables",
    "drop_tables",
    "session_scope",
    "check_connection",
    "init_db",
]
