"""
Pytest configuration and shared fixtures.
"""

import asyncio
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl.api.main import create_app
from queuectl.db import close_db, connection, create_schema, get_session_context, init_db
from queuectl.db.models import Job, utcnow
from queuectl.db.repository import JobRepository
from queuectl.queue.service import QueueService
from queuectl.worker.pool import WorkerPool


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str]:
    """Initialize a fresh SQLite database file for each test."""
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}"

    await init_db(database_url)
    await create_schema()

    yield database_url

    await close_db()


@pytest_asyncio.fixture
async def db_session(database: str) -> AsyncGenerator[AsyncSession]:
    """Create a database session for tests. Tests commit explicitly."""
    async with connection.AsyncSessionLocal() as session:
        yield session

        # Rollback any uncommitted changes
        await session.rollback()


@pytest.fixture
def service(db_session: AsyncSession) -> QueueService:
    """Queue service bound to the test session."""
    return QueueService(db_session)


@pytest_asyncio.fixture
async def client(database: str) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def pool(database: str) -> AsyncGenerator[WorkerPool]:
    """A fast-polling worker pool, drained after the test."""
    pool = WorkerPool(
        poll_interval=0.05,
        error_backoff=0.05,
        heartbeat_interval=0.1,
    )
    yield pool
    await pool.stop()


@pytest.fixture
def make_job() -> Callable[..., Job]:
    """Build a transient Job with every column set, ready for upsert."""

    def _make_job(
        job_id: str,
        command: str = "true",
        max_retries: int = 3,
        attempts: int = 0,
        created_offset: float = 0.0,
        run_offset: float = 0.0,
    ) -> Job:
        now = utcnow()
        return Job(
            id=job_id,
            command=command,
            state="pending",
            attempts=attempts,
            max_retries=max_retries,
            created_at=now + timedelta(seconds=created_offset),
            updated_at=now,
            next_run_at=now + timedelta(seconds=run_offset),
            last_error=None,
            worker_id=None,
        )

    return _make_job


@pytest.fixture
def fetch_job() -> Callable[[str], Awaitable[Job | None]]:
    """Read a job through a fresh session."""

    async def _fetch_job(job_id: str) -> Job | None:
        async with get_session_context() as session:
            return await JobRepository(session).get(job_id)

    return _fetch_job


@pytest.fixture
def eventually() -> Callable[..., Awaitable[None]]:
    """Poll an async predicate until it holds or the timeout expires."""

    async def _eventually(
        predicate: Callable[[], Awaitable[bool]],
        timeout: float = 10.0,
        interval: float = 0.05,
    ) -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if await predicate():
                return
            await asyncio.sleep(interval)
        raise AssertionError(f"condition not met within {timeout}s")

    return _eventually
