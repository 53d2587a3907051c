"""
Lease-related type definitions for internal use.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leasepool.db.models import Lease


@dataclass(frozen=True)
class LeaseInfo:
    """
    Immutable snapshot of a lease row.

    Returned by the repository so that callers never hold live ORM state,
    and cached by the lease service as "the lease I believe I hold".
    """

    lease_id: int
    assignment_name: str
    holder_id: str | None
    locked_at: datetime | None
    lock_expires_at: datetime | None

    @classmethod
    def from_model(cls, lease: "Lease") -> "LeaseInfo":
        """Build a snapshot from a loaded Lease row."""
        return cls(
            lease_id=lease.id,
            assignment_name=lease.assignment_name,
            holder_id=lease.holder_id,
            locked_at=lease.locked_at,
            lock_expires_at=lease.lock_expires_at,
        )

    def is_expired(self, now: datetime) -> bool:
        """Check if the lease has expired at time now (strictly past its deadline)."""
        if self.lock_expires_at is None:
            return True
        return self.lock_expires_at < now

    def time_remaining_seconds(self, now: datetime) -> float:
        """Get remaining time on the lease at time now, in seconds."""
        if self.lock_expires_at is None:
            return 0.0
        remaining = (self.lock_expires_at - now).total_seconds()
        return max(0.0, remaining)
