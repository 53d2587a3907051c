"""
Lease keep-alive loop.

Renews the held lease on a fixed interval so it never expires while the
process is healthy. If the process crashes the renewals stop and the lease
expires on its own, letting another instance take the assignment.
"""

import asyncio
import logging

from leasepool.lease.service import LeaseService
from leasepool.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


class LeaseKeepAlive:
    """
    Periodic lease renewal task.

    Features:
    - Renews every interval seconds; the interval must be shorter than the
      lease duration or a healthy lease can expire between renewals
    - A failed renewal is logged and the loop keeps running
    - Exceptions from a tick are logged and never stop the schedule
    - Bounded re-acquisition after the lease has been lost
    """

    def __init__(
        self,
        service: LeaseService,
        interval_seconds: float,
        reacquire_attempts: int = 0,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the keep-alive loop.

        Args:
            service: The lease service whose lease is kept alive.
            interval_seconds: Seconds between renewals.
            reacquire_attempts: Consecutive ticks that may try to acquire a
                new lease once the held one is lost. 0 disables re-acquisition.
            metrics: Metrics collector. Uses the global collector if not given.
        """
        self._service = service
        self.interval = interval_seconds
        self.reacquire_attempts = reacquire_attempts

        self._running = False
        self._task: asyncio.Task | None = None
        self._reacquire_failures = 0
        self._metrics = metrics or get_metrics()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """
        Start the keep-alive loop as a background task.

        Returns:
            The running task.
        """
        if self.is_running:
            return self._task

        logger.info(
            f"Lease keep-alive starting with interval {self.interval}s",
            extra={"holder_id": self._service.holder_id},
        )
        self._running = True
        self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        """Stop the loop and wait for the task to finish."""
        logger.info("Lease keep-alive stopping", extra={"holder_id": self._service.holder_id})
        self._running = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            await self.run_once()

        logger.info("Lease keep-alive stopped")

    async def run_once(self) -> bool:
        """
        Run a single keep-alive tick.

        Returns:
            True if a lease is held after the tick (renewed or re-acquired).
        """
        try:
            if not self._service.handle.is_held and self._should_reacquire():
                return await self._reacquire()

            renewed = await self._service.renew_lease()
            if not renewed:
                logger.warning(
                    "Lease keep-alive failed - no lease is currently held. "
                    "The lease was lost or never acquired.",
                    extra={"holder_id": self._service.holder_id},
                )
            return renewed

        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._metrics.record_keepalive_error(self._service.holder_id)
            logger.exception(
                f"Error during lease keep-alive renewal: {e}",
                extra={"holder_id": self._service.holder_id},
            )
            return False

    def _should_reacquire(self) -> bool:
        return self._reacquire_failures < self.reacquire_attempts

    async def _reacquire(self) -> bool:
        lease = await self._service.acquire_lease()

        if lease is None:
            self._reacquire_failures += 1
            logger.warning(
                "Lease re-acquisition failed",
                extra={
                    "holder_id": self._service.holder_id,
                    "attempt": self._reacquire_failures,
                    "max_attempts": self.reacquire_attempts,
                },
            )
            if not self._should_reacquire():
                logger.error(
                    "Giving up lease re-acquisition; instance holds no assignment",
                    extra={"holder_id": self._service.holder_id},
                )
            return False

        self._reacquire_failures = 0
        logger.info(
            "Re-acquired consumer group lease",
            extra={
                "holder_id": self._service.holder_id,
                "assignment_name": lease.assignment_name,
            },
        )
        return True
