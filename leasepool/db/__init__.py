"""
Database module.
Contains database connection, models, and the lease repository.
"""

from leasepool.db.connection import (
    close_db,
    create_session_factory,
    create_tables,
    get_engine,
    get_session_factory,
    init_db,
)
from leasepool.db.models import Base, Lease
from leasepool.db.repository import LeaseRepository

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_session_factory",
    "create_tables",
    "init_db",
    "close_db",
    "Lease",
    "LeaseRepository",
    "Base",
]
