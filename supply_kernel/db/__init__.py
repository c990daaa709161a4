"""Database layer - engine, base classes and immutability."""

from supply_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from supply_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
    transaction_boundary,
)

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "transaction_boundary",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
