"""
SQLAlchemy database models.
Defines the lease pool table.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from leasepool.clock import utc_now
from leasepool.constants import LEASE_TABLE_NAME


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Lease(Base):
    """
    Lease model representing one claimable assignment slot.

    This is the authoritative source of truth for who holds which
    consumer group. Rows are seeded out-of-band; the lease manager only
    mutates the holder and lock timestamps.

    Key constraints:
    - assignment_name is unique and immutable once seeded
    - a lease is available when holder_id is NULL or lock_expires_at has passed
    - id defines scan order for acquisition
    """

    __tablename__ = LEASE_TABLE_NAME

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Assignment handed to the consumer group
    assignment_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Lock state
    holder_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )
    lock_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )

    # Table constraints and indexes
    __table_args__ = (
        UniqueConstraint("assignment_name", name="uq_lease_pool_assignment_name"),
    )

    def is_available(self, now: datetime | None = None) -> bool:
        """Check if the lease can be acquired (free, or held but expired)."""
        if self.holder_id is None:
            return True
        if self.lock_expires_at is None:
            return False
        return self.lock_expires_at < (now or utc_now())

    def __repr__(self) -> str:
        return (
            f"Lease(id={self.id}, assignment={self.assignment_name}, "
            f"holder={self.holder_id}, expires={self.lock_expires_at})"
        )
