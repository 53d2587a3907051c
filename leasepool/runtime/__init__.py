"""
Runtime module.
Contains the process supervisor that owns the consumer group lease.
"""

from leasepool.runtime.main import LeaseRuntime, run

__all__ = ["LeaseRuntime", "run"]
