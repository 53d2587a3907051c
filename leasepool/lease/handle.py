"""
Guarded cell holding the lease this process currently believes it holds.
"""

import threading

from leasepool.types.lease import LeaseInfo


class AssignmentHandle:
    """
    Single-producer, multi-reader reference to the held lease.

    The lease service writes it (on acquisition, renewal and loss); the
    message consumer configuration and anything else that needs the
    assignment name reads it. Reads and writes are serialized with a lock
    because a failed renewal on the keep-alive task can clear the lease
    at any time relative to readers on other threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._lease: LeaseInfo | None = None

    @property
    def lease(self) -> LeaseInfo | None:
        """The held lease snapshot, or None."""
        with self._lock:
            return self._lease

    @property
    def assignment_name(self) -> str | None:
        """The held assignment name, or None if nothing is held."""
        with self._lock:
            return self._lease.assignment_name if self._lease is not None else None

    @property
    def is_held(self) -> bool:
        with self._lock:
            return self._lease is not None

    def publish(self, lease: LeaseInfo) -> None:
        """Replace the held lease."""
        with self._lock:
            self._lease = lease

    def clear(self) -> LeaseInfo | None:
        """
        Forget the held lease.

        Returns:
            The lease that was held before clearing, if any.
        """
        with self._lock:
            previous, self._lease = self._lease, None
            return previous

    def __repr__(self) -> str:
        return f"AssignmentHandle(assignment={self.assignment_name})"
