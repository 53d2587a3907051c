"""
Unit tests for the lease keep-alive loop.
"""

import asyncio
from datetime import datetime, timedelta

import pytest

from leasepool.exceptions import LeaseStorageError
from leasepool.lease.handle import AssignmentHandle
from leasepool.lease.keepalive import LeaseKeepAlive
from leasepool.types.lease import LeaseInfo


def make_lease(name: str = "g-a") -> LeaseInfo:
    locked_at = datetime(2026, 1, 1, 12, 0, 0)
    return LeaseInfo(
        lease_id=1,
        assignment_name=name,
        holder_id="stub-instance",
        locked_at=locked_at,
        lock_expires_at=locked_at + timedelta(seconds=30),
    )


class StubLeaseService:
    """
    Lease service double with scripted outcomes.

    Each renew/acquire call pops the next scripted result; an exception
    instance is raised instead of returned.
    """

    holder_id = "stub-instance"

    def __init__(self, renew_results=(), acquire_results=(), held: bool = True):
        self.handle = AssignmentHandle()
        if held:
            self.handle.publish(make_lease())
        self.renew_results = list(renew_results)
        self.acquire_results = list(acquire_results)
        self.renew_calls = 0
        self.acquire_calls = 0

    async def renew_lease(self) -> bool:
        self.renew_calls += 1
        result = self.renew_results.pop(0) if self.renew_results else self.handle.is_held
        if isinstance(result, Exception):
            raise result
        if not result:
            self.handle.clear()
        return result

    async def acquire_lease(self) -> LeaseInfo | None:
        self.acquire_calls += 1
        result = self.acquire_results.pop(0) if self.acquire_results else None
        if isinstance(result, Exception):
            raise result
        if result is not None:
            self.handle.publish(result)
        return result


class TestLeaseKeepAlive:
    """Tests for LeaseKeepAlive."""

    async def test_tick_renews(self, metrics):
        service = StubLeaseService(renew_results=[True])
        keepalive = LeaseKeepAlive(service, interval_seconds=20, metrics=metrics)

        assert await keepalive.run_once() is True
        assert service.renew_calls == 1

    async def test_failed_renewal_is_not_fatal(self, metrics):
        """Test that a False renewal is reported and the next tick still runs."""
        service = StubLeaseService(renew_results=[False, False])
        keepalive = LeaseKeepAlive(service, interval_seconds=20, metrics=metrics)

        assert await keepalive.run_once() is False
        assert await keepalive.run_once() is False
        assert service.renew_calls == 2

    async def test_tick_exception_is_swallowed(self, metrics, registry):
        """Test that a storage failure does not escape the tick."""
        service = StubLeaseService(
            renew_results=[LeaseStorageError("connection refused"), True]
        )
        keepalive = LeaseKeepAlive(service, interval_seconds=20, metrics=metrics)

        assert await keepalive.run_once() is False
        assert await keepalive.run_once() is True
        assert registry.get_sample_value(
            "lease_keepalive_errors_total", {"instance_id": "stub-instance"}
        ) == 1.0

    async def test_loop_survives_exceptions(self, metrics):
        """Test that the background schedule keeps running after a failed tick."""
        service = StubLeaseService(
            renew_results=[RuntimeError("boom"), False, True, True]
        )
        keepalive = LeaseKeepAlive(service, interval_seconds=0.01, metrics=metrics)

        keepalive.start()
        assert keepalive.is_running

        for _ in range(200):
            if service.renew_calls >= 4:
                break
            await asyncio.sleep(0.01)

        await keepalive.stop()

        assert service.renew_calls >= 4
        assert keepalive.is_running is False

    async def test_start_is_idempotent(self, metrics):
        service = StubLeaseService()
        keepalive = LeaseKeepAlive(service, interval_seconds=10, metrics=metrics)

        first = keepalive.start()
        second = keepalive.start()

        assert first is second
        await keepalive.stop()

    async def test_stop_without_start(self, metrics):
        keepalive = LeaseKeepAlive(StubLeaseService(), interval_seconds=10, metrics=metrics)
        await keepalive.stop()
        assert keepalive.is_running is False

    async def test_no_reacquire_by_default(self, metrics):
        """Test that a lost lease stays lost when re-acquisition is disabled."""
        service = StubLeaseService(renew_results=[False], acquire_results=[make_lease("g-b")])
        keepalive = LeaseKeepAlive(service, interval_seconds=20, metrics=metrics)

        await keepalive.run_once()
        await keepalive.run_once()

        assert service.acquire_calls == 0
        assert service.handle.assignment_name is None

    async def test_reacquire_after_loss(self, metrics):
        """Test that the next tick after a loss acquires a new lease."""
        service = StubLeaseService(renew_results=[False], acquire_results=[make_lease("g-b")])
        keepalive = LeaseKeepAlive(
            service, interval_seconds=20, reacquire_attempts=3, metrics=metrics
        )

        assert await keepalive.run_once() is False
        assert await keepalive.run_once() is True

        assert service.acquire_calls == 1
        assert service.handle.assignment_name == "g-b"

    async def test_reacquire_is_bounded(self, metrics):
        """Test that re-acquisition stops after the configured attempts."""
        service = StubLeaseService(held=False)
        keepalive = LeaseKeepAlive(
            service, interval_seconds=20, reacquire_attempts=2, metrics=metrics
        )

        for _ in range(5):
            assert await keepalive.run_once() is False

        assert service.acquire_calls == 2
        assert service.renew_calls == 3

    async def test_reacquire_counter_resets_on_success(self, metrics):
        service = StubLeaseService(
            held=False,
            renew_results=[False],
            acquire_results=[None, make_lease("g-a"), None, None],
        )
        keepalive = LeaseKeepAlive(
            service, interval_seconds=20, reacquire_attempts=2, metrics=metrics
        )

        assert await keepalive.run_once() is False  # acquire fails
        assert await keepalive.run_once() is True  # acquire succeeds
        assert await keepalive.run_once() is False  # renew fails, lease lost
        assert await keepalive.run_once() is False  # acquire fails
        assert await keepalive.run_once() is False  # acquire fails
        assert await keepalive.run_once() is False  # attempts exhausted, renew

        assert service.acquire_calls == 4

    @pytest.mark.parametrize("interval", [0.5, 20])
    def test_interval(self, metrics, interval):
        keepalive = LeaseKeepAlive(StubLeaseService(), interval_seconds=interval, metrics=metrics)
        assert keepalive.interval == interval
