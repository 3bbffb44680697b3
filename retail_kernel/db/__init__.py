"""Database layer - engine, declarative base and portable column types."""

from retail_kernel.db.base import UUID, Base, DecimalString, TrackedBase, UUIDString
from retail_kernel.db.engine import create_tables, get_engine, get_session, session_scope

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "DecimalString",
    "UUID",
]
