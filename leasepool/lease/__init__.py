"""
Lease lifecycle module.
Contains the lease service, keep-alive loop, acquisition gate and the
handle through which the held assignment is published.
"""

from leasepool.lease.gate import AcquisitionGate
from leasepool.lease.handle import AssignmentHandle
from leasepool.lease.keepalive import LeaseKeepAlive
from leasepool.lease.service import LeaseService

__all__ = [
    "AcquisitionGate",
    "AssignmentHandle",
    "LeaseKeepAlive",
    "LeaseService",
]
