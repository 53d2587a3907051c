"""
Lease service.

Per-instance session state over the lease repository: who this instance
is, how long its leases last, and which lease it believes it holds.
"""

import logging

from leasepool.constants import (
    SPAN_ACQUIRE_LEASE,
    SPAN_RELEASE_LEASE,
    SPAN_RENEW_LEASE,
)
from leasepool.db.repository import LeaseRepository
from leasepool.lease.handle import AssignmentHandle
from leasepool.observability.metrics import MetricsCollector, get_metrics
from leasepool.observability.tracing import lease_span
from leasepool.types.lease import LeaseInfo

logger = logging.getLogger(__name__)


class LeaseService:
    """
    Acquires, renews and releases this instance's consumer group lease.

    The held lease lives in an AssignmentHandle that downstream components
    read. A failed renewal clears it: after that the instance must not
    assume it owns any assignment.
    """

    def __init__(
        self,
        repository: LeaseRepository,
        holder_id: str,
        lease_duration_seconds: int,
        handle: AssignmentHandle | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the lease service.

        Args:
            repository: Transactional access to the lease table.
            holder_id: Identity of this instance.
            lease_duration_seconds: Validity of an acquired or renewed lease.
            handle: Cell the held lease is published to. Created if not given.
            metrics: Metrics collector. Uses the global collector if not given.
        """
        self._repository = repository
        self._holder_id = holder_id
        self._lease_duration_seconds = lease_duration_seconds
        self._handle = handle or AssignmentHandle()
        self._metrics = metrics or get_metrics()

    @property
    def holder_id(self) -> str:
        return self._holder_id

    @property
    def lease_duration_seconds(self) -> int:
        return self._lease_duration_seconds

    @property
    def handle(self) -> AssignmentHandle:
        return self._handle

    async def acquire_lease(self) -> LeaseInfo | None:
        """
        Acquire a lease for this instance.

        A repeated call is a fresh acquisition attempt; the held lease is
        only replaced when it succeeds.

        Returns:
            The acquired lease, or None if no lease is available.
        """
        logger.info(
            "Attempting to acquire consumer group lease",
            extra={
                "holder_id": self._holder_id,
                "duration_seconds": self._lease_duration_seconds,
            },
        )

        with lease_span(
            SPAN_ACQUIRE_LEASE,
            self._holder_id,
            duration_seconds=self._lease_duration_seconds,
        ) as span:
            lease = await self._repository.acquire(
                self._holder_id, self._lease_duration_seconds
            )

            if lease is None:
                span.set_attribute("lease.acquired", False)
                self._metrics.record_lease_unavailable(self._holder_id)
                logger.warning(
                    "No consumer group lease available",
                    extra={"holder_id": self._holder_id},
                )
                return None

            span.set_attribute("lease.acquired", True)
            span.set_attribute("lease.assignment_name", lease.assignment_name)

        self._handle.publish(lease)
        self._metrics.record_lease_acquired(self._holder_id)
        logger.info(
            "Acquired consumer group lease",
            extra={
                "holder_id": self._holder_id,
                "assignment_name": lease.assignment_name,
                "lease_id": lease.lease_id,
                "lock_expires_at": lease.lock_expires_at.isoformat() if lease.lock_expires_at else None,
            },
        )
        return lease

    async def renew_lease(self) -> bool:
        """
        Extend the held lease.

        Returns:
            True if the lease was renewed. False if nothing is held or the
            lease was lost, in which case the held lease is cleared.
        """
        if not self._handle.is_held:
            logger.debug("No lease to renew", extra={"holder_id": self._holder_id})
            return False

        with lease_span(
            SPAN_RENEW_LEASE,
            self._holder_id,
            assignment_name=self._handle.assignment_name,
        ) as span:
            renewed = await self._repository.renew(
                self._holder_id, self._lease_duration_seconds
            )
            span.set_attribute("lease.renewed", renewed)

            if renewed:
                refreshed = await self._repository.find_by_holder(self._holder_id)
                if refreshed is not None:
                    self._handle.publish(refreshed)
                self._metrics.record_lease_renewed(self._holder_id)
                return True

        lost = self._handle.clear()
        self._metrics.record_lease_lost(self._holder_id)
        logger.warning(
            "Lease renewal failed - lease has been lost",
            extra={
                "holder_id": self._holder_id,
                "assignment_name": lost.assignment_name if lost else None,
            },
        )
        return False

    async def release_lease(self) -> bool:
        """
        Release the held lease.

        Returns:
            True if a lease was released, False otherwise.
        """
        if not self._handle.is_held:
            logger.warning("No lease to release", extra={"holder_id": self._holder_id})
            return False

        with lease_span(
            SPAN_RELEASE_LEASE,
            self._holder_id,
            assignment_name=self._handle.assignment_name,
        ) as span:
            released = await self._repository.release(self._holder_id)
            span.set_attribute("lease.released", released)

        if released:
            self._handle.clear()
            self._metrics.record_lease_released(self._holder_id)
            logger.info("Released consumer group lease", extra={"holder_id": self._holder_id})
        return released

    def get_acquired_lease(self) -> LeaseInfo | None:
        """Get the lease this instance currently believes it holds."""
        return self._handle.lease

    def get_acquired_assignment_name(self) -> str | None:
        """Get the held assignment name, or None if no lease is held."""
        return self._handle.assignment_name
