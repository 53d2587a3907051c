"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from leasepool.db.connection import (
    create_session_factory,
    create_tables,
    get_test_engine,
)
from leasepool.db.models import Lease
from leasepool.db.repository import LeaseRepository
from leasepool.lease.service import LeaseService
from leasepool.observability.metrics import MetricsCollector

# Optional PostgreSQL database; a per-test SQLite file is used otherwise
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

LEASE_DURATION_SECONDS = 30


class FakeClock:
    """Controllable naive-UTC clock for lease expiry tests."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def database_url(tmp_path) -> str:
    """Get the test database URL."""
    return TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'leases.db'}"


@pytest_asyncio.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async database engine with an empty lease pool."""
    engine = get_test_engine(database_url)
    await create_tables(engine)

    async with engine.begin() as conn:
        await conn.execute(delete(Lease))

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to the test engine."""
    return create_session_factory(async_engine)


@pytest.fixture
def clock() -> FakeClock:
    """Create a clock starting at a fixed instant."""
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture
def registry() -> CollectorRegistry:
    """Create an isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    """Create a metrics collector on the isolated registry."""
    return MetricsCollector(registry=registry)


@pytest.fixture
def repo(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FakeClock,
) -> LeaseRepository:
    """Create a repository using the fake clock."""
    return LeaseRepository(session_factory, clock=clock)


@pytest.fixture
def make_service(
    repo: LeaseRepository,
    metrics: MetricsCollector,
) -> Callable[[str], LeaseService]:
    """Factory for lease services sharing the test repository."""

    def _make(holder_id: str) -> LeaseService:
        return LeaseService(
            repository=repo,
            holder_id=holder_id,
            lease_duration_seconds=LEASE_DURATION_SECONDS,
            metrics=metrics,
        )

    return _make


@pytest.fixture
def seed_leases(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[list[int]]]:
    """Seed the pool with one free lease per assignment name, ids from 1."""

    async def _seed(*assignment_names: str) -> list[int]:
        leases = [
            Lease(id=lease_id, assignment_name=name)
            for lease_id, name in enumerate(assignment_names, start=1)
        ]
        async with session_factory() as session:
            async with session.begin():
                session.add_all(leases)
        return [lease.id for lease in leases]

    return _seed


@pytest.fixture
def fetch_lease(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[int], Awaitable[Lease | None]]:
    """Read a lease row directly, bypassing the repository."""

    async def _fetch(lease_id: int) -> Lease | None:
        async with session_factory() as session:
            async with session.begin():
                return await session.get(Lease, lease_id)

    return _fetch
