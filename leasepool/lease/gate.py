"""
Startup acquisition gate.

Everything that needs the assignment name, the message consumer
configuration in particular, is built only after the gate has opened.
A process that cannot acquire a lease must not start: serving under a
shared default group id would break exclusivity across instances.
"""

import asyncio
import logging

from leasepool.exceptions import (
    LeaseAcquisitionError,
    LeaseStorageError,
    LeaseUnavailableError,
)
from leasepool.lease.service import LeaseService

logger = logging.getLogger(__name__)


class AcquisitionGate:
    """
    Blocks startup until this instance holds a consumer group lease.

    A lost race against a concurrent acquirer surfaces as "no lease
    available" from the repository, so the gate makes a small, bounded
    number of attempts before declaring the pool exhausted.
    """

    def __init__(
        self,
        service: LeaseService,
        attempts: int = 1,
        retry_delay_seconds: float = 0.0,
    ):
        """
        Initialize the gate.

        Args:
            service: The lease service used to acquire.
            attempts: Acquisition attempts before failing startup.
            retry_delay_seconds: Pause between attempts.
        """
        self._service = service
        self._attempts = max(1, attempts)
        self._retry_delay_seconds = retry_delay_seconds
        self._assignment_name: str | None = None

    @property
    def assignment_name(self) -> str | None:
        """The assignment name the gate opened with, or None before opening."""
        return self._assignment_name

    async def open(self) -> str:
        """
        Acquire a lease and publish its assignment name.

        Returns:
            The acquired assignment name.

        Raises:
            LeaseUnavailableError: If every lease in the pool is held.
            LeaseAcquisitionError: If the lease store failed during acquisition.
        """
        holder_id = self._service.holder_id
        logger.info("Acquiring consumer group lease", extra={"holder_id": holder_id})

        lease = None
        for attempt in range(1, self._attempts + 1):
            try:
                lease = await self._service.acquire_lease()
            except LeaseStorageError as e:
                logger.error(
                    "CRITICAL: Lease store failure while acquiring consumer group lease. "
                    "Service cannot start.",
                    extra={"holder_id": holder_id, "error": str(e)},
                )
                raise LeaseAcquisitionError(
                    f"Failed to acquire consumer group lease for {holder_id}: {e}"
                ) from e

            if lease is not None:
                break

            if attempt < self._attempts:
                await asyncio.sleep(self._retry_delay_seconds)

        if lease is None:
            logger.error(
                "CRITICAL: No consumer group lease available. Service cannot start.",
                extra={"holder_id": holder_id, "attempts": self._attempts},
            )
            raise LeaseUnavailableError(
                f"Failed to acquire consumer group lease for {holder_id} - no available leases"
            )

        self._assignment_name = lease.assignment_name
        logger.info(
            "Successfully acquired consumer group lease",
            extra={
                "assignment_name": lease.assignment_name,
                "holder_id": holder_id,
                "lease_id": lease.lease_id,
            },
        )
        return lease.assignment_name
