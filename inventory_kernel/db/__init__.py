"""Database layer: declarative base, engine handle, unit of work, guards."""

from inventory_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from inventory_kernel.db.engine import Database
from inventory_kernel.db.unit_of_work import UnitOfWork

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "Database",
    "UnitOfWork",
]
