"""
Type definitions for the lease pool.
"""

from leasepool.types.lease import LeaseInfo

__all__ = [
    "LeaseInfo",
]
