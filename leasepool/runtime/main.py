"""
Lease runtime process.

Owns the lease for the lifetime of the process: acquires it before the
consumer is configured, keeps it alive in the background and releases it
on graceful shutdown.
"""

import asyncio
import logging
import signal
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leasepool.config import Settings, get_settings, resolve_instance_id
from leasepool.consumer.config import ConsumerConfig, build_consumer_config
from leasepool.db import close_db, get_engine, get_session_factory, init_db
from leasepool.db.repository import LeaseRepository
from leasepool.exceptions import LeaseAcquisitionError, LeaseStorageError
from leasepool.lease.gate import AcquisitionGate
from leasepool.lease.handle import AssignmentHandle
from leasepool.lease.keepalive import LeaseKeepAlive
from leasepool.lease.service import LeaseService
from leasepool.observability.logging import bind_context, clear_context, setup_logging
from leasepool.observability.metrics import setup_metrics
from leasepool.observability.tracing import instrument_sqlalchemy, setup_tracing

logger = logging.getLogger(__name__)


class LeaseRuntime:
    """
    Process supervisor for the consumer group lease.

    Startup order:
    1. Acquisition gate (fails startup if no lease is available)
    2. Keep-alive loop
    3. Consumer configuration from the published assignment

    Shutdown stops the keep-alive loop, then releases the lease so another
    instance can take it without waiting for expiry.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        """
        Initialize the runtime.

        Args:
            settings: Optional settings. Uses cached settings if not provided.
            session_factory: Optional session factory. Uses the initialized
                process-wide factory if not provided.
        """
        self.settings = settings or get_settings()
        self.instance_id = resolve_instance_id(self.settings)
        self.handle = AssignmentHandle()

        self._session_factory = session_factory
        self._service: LeaseService | None = None
        self._keepalive: LeaseKeepAlive | None = None
        self._consumer_config: ConsumerConfig | None = None
        self._stop_event = asyncio.Event()

    @property
    def service(self) -> LeaseService | None:
        return self._service

    @property
    def keepalive(self) -> LeaseKeepAlive | None:
        return self._keepalive

    @property
    def consumer_config(self) -> ConsumerConfig | None:
        return self._consumer_config

    async def start(self) -> ConsumerConfig:
        """
        Acquire the lease and start keeping it alive.

        Returns:
            ConsumerConfig: Consumer settings bound to the acquired assignment.

        Raises:
            LeaseAcquisitionError: If no lease could be acquired.
        """
        settings = self.settings

        if settings.lease_renewal_interval_seconds >= settings.lease_duration_seconds:
            logger.warning(
                "Lease renewal interval is not shorter than the lease duration; "
                "a healthy lease can expire between renewals",
                extra={
                    "renewal_interval_seconds": settings.lease_renewal_interval_seconds,
                    "lease_duration_seconds": settings.lease_duration_seconds,
                },
            )

        repository = LeaseRepository(self._session_factory or get_session_factory())
        self._service = LeaseService(
            repository=repository,
            holder_id=self.instance_id,
            lease_duration_seconds=settings.lease_duration_seconds,
            handle=self.handle,
        )

        gate = AcquisitionGate(
            self._service,
            attempts=settings.lease_acquire_attempts,
            retry_delay_seconds=settings.lease_acquire_retry_delay_seconds,
        )
        await gate.open()

        self._keepalive = LeaseKeepAlive(
            self._service,
            interval_seconds=settings.lease_renewal_interval_seconds,
            reacquire_attempts=settings.lease_reacquire_attempts,
        )
        self._keepalive.start()

        self._consumer_config = build_consumer_config(self.handle, settings)
        return self._consumer_config

    async def run(self) -> None:
        """Start, then hold the lease until stop() is called."""
        await self.start()
        logger.info("Lease runtime started", extra={"instance_id": self.instance_id})

        try:
            await self._stop_event.wait()
        finally:
            await self.shutdown()

    async def stop(self) -> None:
        """Request a graceful stop."""
        logger.info("Lease runtime stopping", extra={"instance_id": self.instance_id})
        self._stop_event.set()

    async def shutdown(self) -> None:
        """Stop the keep-alive loop and release the lease if configured to."""
        if self._keepalive is not None:
            await self._keepalive.stop()

        if self._service is not None and self.settings.lease_release_on_shutdown:
            try:
                await self._service.release_lease()
            except LeaseStorageError as e:
                # The lease will still expire on its own
                logger.error(
                    "Failed to release lease on shutdown",
                    extra={"instance_id": self.instance_id, "error": str(e)},
                )

        logger.info("Lease runtime stopped", extra={"instance_id": self.instance_id})


async def run_async() -> int:
    """
    Run the lease runtime asynchronously.

    Returns:
        Process exit code.
    """
    settings = get_settings()
    runtime = LeaseRuntime(settings)

    setup_logging(settings, handle=runtime.handle)
    bind_context(instance_id=runtime.instance_id)
    setup_metrics()
    await init_db()

    if settings.tracing_enabled:
        setup_tracing(settings)
        instrument_sqlalchemy(get_engine().sync_engine)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(runtime.stop())
        )

    try:
        await runtime.run()
    except LeaseAcquisitionError as e:
        logger.error(f"Service cannot start: {e}")
        return 1
    finally:
        await close_db()
        clear_context()

    return 0


def run() -> None:
    """Run the lease runtime."""
    sys.exit(asyncio.run(run_async()))


if __name__ == "__main__":
    run()
