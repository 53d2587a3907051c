"""
Lease pool exceptions.

Expected contention (no free lease) is not raised by the service layer;
it only becomes an exception where startup cannot continue without an
assignment.
"""


class LeasePoolError(Exception):
    """Base class for lease pool errors."""


class LeaseStorageError(LeasePoolError):
    """The lease store could not complete an operation (connectivity, transaction)."""


class LeaseAcquisitionError(LeasePoolError):
    """No assignment could be acquired at startup. The process must not serve."""


class LeaseUnavailableError(LeaseAcquisitionError):
    """Every lease in the pool is currently held by another instance."""
