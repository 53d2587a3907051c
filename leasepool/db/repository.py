"""
Lease repository for database operations.
Implements the transactional data access patterns for lease management.
"""

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from leasepool.db.connection import READ_ONLY_OPTION
from leasepool.db.models import Lease
from leasepool.exceptions import LeaseStorageError
from leasepool.types.lease import LeaseInfo

logger = logging.getLogger(__name__)


class LeaseRepository:
    """
    Repository for lease database operations.

    Every public operation runs in its own transaction:
    - Acquisition with a row lock on the lowest-id available lease
      followed by a conditional update
    - Release and renewal scoped to the holder identity
    - Non-locking lookup by holder

    Expiry is judged against the lease store's clock, so every instance
    shares one time source regardless of local clock skew.

    Storage errors are raised as LeaseStorageError and never retried here.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the repository.

        Args:
            session_factory: Factory producing async database sessions.
            clock: Optional source of the current naive UTC time. Uses the
                database time (read inside each transaction) if not provided.
        """
        self._session_factory = session_factory
        self._clock = clock

    @asynccontextmanager
    async def _transaction(self) -> AsyncGenerator[AsyncSession]:
        """Open a session and a transaction that commits on success."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    # Start the transaction (and take the SQLite write lock)
                    # before the clock is read.
                    await session.connection()
                    yield session
        except SQLAlchemyError as e:
            raise LeaseStorageError(f"Lease store operation failed: {e}") from e

    @asynccontextmanager
    async def _snapshot(self) -> AsyncGenerator[AsyncSession]:
        """Open a session for reads only; never takes the write lock."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.connection(
                        execution_options={READ_ONLY_OPTION: True}
                    )
                    yield session
        except SQLAlchemyError as e:
            raise LeaseStorageError(f"Lease store read failed: {e}") from e

    async def _now(self, session: AsyncSession) -> datetime:
        """
        Current naive UTC time for lease comparisons.

        Args:
            session: The session of the current transaction.

        Returns:
            The injected clock's time, or the database time.
        """
        if self._clock is not None:
            return self._clock()

        result = await session.execute(select(func.now()))
        now = result.scalar_one()
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        return now

    @staticmethod
    def _available(now: datetime) -> ColumnElement[bool]:
        """SQL predicate for 'lease can be acquired at time now'."""
        return or_(
            Lease.holder_id.is_(None),
            Lease.lock_expires_at < now,
        )

    async def _lock_candidate(
        self,
        session: AsyncSession,
        now: datetime,
    ) -> int | None:
        """
        Select and row-lock the lowest-id available lease.

        Args:
            session: The session of the current transaction.
            now: Time used for the availability check.

        Returns:
            The candidate lease id, or None if nothing is available.
        """
        stmt = (
            select(Lease.id)
            .where(self._available(now))
            .order_by(Lease.id)
            .limit(1)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _claim(
        self,
        session: AsyncSession,
        lease_id: int,
        holder_id: str,
        now: datetime,
        duration_seconds: int,
    ) -> bool:
        """
        Conditionally assign a lease to a holder.

        The WHERE clause re-checks availability, so a lease taken by a
        concurrent acquirer since it was selected is left untouched.

        Returns:
            True if the lease was claimed, False if the race was lost.
        """
        stmt = (
            update(Lease)
            .where(
                and_(
                    Lease.id == lease_id,
                    self._available(now),
                )
            )
            .values(
                holder_id=holder_id,
                locked_at=now,
                lock_expires_at=now + timedelta(seconds=duration_seconds),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def _select_by_holder(
        self,
        session: AsyncSession,
        holder_id: str,
        lease_id: int | None = None,
    ) -> LeaseInfo | None:
        filters = [Lease.holder_id == holder_id]
        if lease_id is not None:
            filters.append(Lease.id == lease_id)

        stmt = select(Lease).where(and_(*filters)).order_by(Lease.id).limit(1)
        result = await session.execute(stmt)
        lease = result.scalar_one_or_none()
        return LeaseInfo.from_model(lease) if lease is not None else None

    async def acquire(
        self,
        holder_id: str,
        duration_seconds: int,
    ) -> LeaseInfo | None:
        """
        Acquire the lowest-id available lease for a holder.

        Args:
            holder_id: The instance identifier requesting a lease.
            duration_seconds: How long the lease is valid without renewal.

        Returns:
            The acquired lease, or None if no lease is available or a
            concurrent acquirer claimed the candidate first. Callers may
            retry; a retry picks the next lowest-id available lease.
        """
        logger.info(
            "Attempting to acquire lease",
            extra={"holder_id": holder_id, "duration_seconds": duration_seconds},
        )

        async with self._transaction() as session:
            now = await self._now(session)

            lease_id = await self._lock_candidate(session, now)
            if lease_id is None:
                logger.warning(
                    "No available leases found",
                    extra={"holder_id": holder_id},
                )
                return None

            claimed = await self._claim(
                session, lease_id, holder_id, now, duration_seconds
            )
            if not claimed:
                logger.warning(
                    "Lost lease to a concurrent acquirer",
                    extra={"holder_id": holder_id, "lease_id": lease_id},
                )
                return None

            lease = await self._select_by_holder(session, holder_id, lease_id)

        if lease is not None:
            logger.info(
                "Acquired lease",
                extra={
                    "holder_id": holder_id,
                    "lease_id": lease.lease_id,
                    "assignment_name": lease.assignment_name,
                },
            )
        return lease

    async def release(self, holder_id: str) -> bool:
        """
        Release every lease held by a holder.

        Args:
            holder_id: The instance identifier releasing its lease.

        Returns:
            True if a lease was released, False if nothing was held.
        """
        async with self._transaction() as session:
            stmt = (
                update(Lease)
                .where(Lease.holder_id == holder_id)
                .values(
                    holder_id=None,
                    locked_at=None,
                    lock_expires_at=None,
                    updated_at=await self._now(session),
                )
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            released = result.rowcount > 0

        if released:
            logger.info("Released lease", extra={"holder_id": holder_id})
        else:
            logger.warning("No lease found to release", extra={"holder_id": holder_id})
        return released

    async def renew(self, holder_id: str, duration_seconds: int) -> bool:
        """
        Extend the lease held by a holder (keep-alive).

        Only an unexpired lease still recorded for this holder is extended.
        Once the deadline has passed the lease is considered abandoned,
        even if no other instance has taken it yet.

        Args:
            holder_id: The instance identifier holding the lease.
            duration_seconds: New validity, counted from now.

        Returns:
            True if the lease was renewed, False if it has been lost.
        """
        async with self._transaction() as session:
            now = await self._now(session)
            stmt = (
                update(Lease)
                .where(
                    and_(
                        Lease.holder_id == holder_id,
                        Lease.lock_expires_at >= now,
                    )
                )
                .values(
                    lock_expires_at=now + timedelta(seconds=duration_seconds),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            renewed = result.rowcount > 0

        if renewed:
            logger.debug(
                "Renewed lease",
                extra={"holder_id": holder_id, "duration_seconds": duration_seconds},
            )
        else:
            logger.warning(
                "Failed to renew lease - lease may have been lost",
                extra={"holder_id": holder_id},
            )
        return renewed

    async def find_by_holder(self, holder_id: str) -> LeaseInfo | None:
        """
        Get the lease currently recorded for a holder.

        Args:
            holder_id: The instance identifier.

        Returns:
            The lowest-id lease held by this holder, or None.
        """
        async with self._snapshot() as session:
            return await self._select_by_holder(session, holder_id)

    async def list_leases(self) -> list[LeaseInfo]:
        """
        Get every lease in the pool in scan order.

        Returns:
            All leases ordered by id.
        """
        async with self._snapshot() as session:
            result = await session.execute(select(Lease).order_by(Lease.id))
            return [LeaseInfo.from_model(lease) for lease in result.scalars().all()]

    async def current_time(self) -> datetime:
        """
        Get the time lease expiry is judged against.

        Returns:
            The injected clock's time, or the database time as naive UTC.
        """
        async with self._snapshot() as session:
            return await self._now(session)
