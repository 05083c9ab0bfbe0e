"""Database layer - engine, base classes, transactions, and immutability."""

from tire_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from tire_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
    transaction,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "create_tables",
    "session_scope",
    "transaction",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
