"""Database layer - engine, base classes, types, and immutability listeners."""

from backoffice_kernel.db.base import Base, TrackedBase, UUIDString
from backoffice_kernel.db.engine import create_tables, get_engine, get_session
from backoffice_kernel.db.types import Money, round_money

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "Money",
    "round_money",
]
