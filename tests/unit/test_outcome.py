"""
Unit tests for outcome handling.
"""

from datetime import timedelta

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl.constants import MAX_ERROR_LENGTH, JobState
from queuectl.db.models import Job, utcnow
from queuectl.db.repository import ConfigRepository, DeadLetterRepository, JobRepository
from queuectl.types.job import ExecutionResult
from queuectl.worker.outcome import handle_outcome

SUCCESS = ExecutionResult(success=True, exit_code=0, stdout="ok\n")


def failure(stderr: str = "boom\n", exit_code: int = 1) -> ExecutionResult:
    return ExecutionResult(success=False, exit_code=exit_code, stderr=stderr)


class TestHandleOutcome:
    """Tests for handle_outcome."""

    @pytest_asyncio.fixture
    async def claimed(self, db_session: AsyncSession, make_job):
        """Store a job and claim it as worker-1."""

        async def _claimed(**kwargs) -> Job:
            await JobRepository(db_session).upsert(make_job("job-1", **kwargs))
            await db_session.commit()
            job = await JobRepository(db_session).claim_next("worker-1")
            await db_session.commit()
            return job

        return _claimed

    async def test_success_removes_job(self, db_session, claimed):
        job = await claimed()

        outcome = await handle_outcome(db_session, job, SUCCESS, "worker-1")
        await db_session.commit()

        assert outcome.state == JobState.COMPLETED
        assert outcome.attempts == 1
        assert outcome.lost is False
        assert await JobRepository(db_session).get("job-1") is None
        assert await DeadLetterRepository(db_session).count() == 0

    async def test_failure_schedules_retry(self, db_session, claimed):
        """Test a failure below the budget requeues with exponential backoff."""
        job = await claimed(max_retries=3)
        now = utcnow()

        outcome = await handle_outcome(db_session, job, failure(), "worker-1", now=now)
        await db_session.commit()

        assert outcome.state == JobState.FAILED
        assert outcome.attempts == 1
        assert outcome.reason == "boom"
        assert outcome.next_run_at == now + timedelta(seconds=2)

        stored = await JobRepository(db_session).get("job-1")
        assert stored.state == JobState.PENDING
        assert stored.attempts == 1
        assert stored.last_error == "boom"
        assert stored.worker_id is None
        assert stored.next_run_at == now + timedelta(seconds=2)

    async def test_backoff_uses_current_config(self, db_session, claimed):
        """Test backoff_base is read when the failure is handled."""
        job = await claimed(max_retries=5, attempts=1)
        await ConfigRepository(db_session).set("backoff_base", 3)
        await db_session.commit()
        now = utcnow()

        outcome = await handle_outcome(db_session, job, failure(), "worker-1", now=now)
        await db_session.commit()

        # Second attempt: 3 ** 2
        assert outcome.attempts == 2
        assert outcome.next_run_at == now + timedelta(seconds=9)

    async def test_exhausted_job_moves_to_dlq(self, db_session, claimed):
        """Test the final failure deletes the job and stores a snapshot."""
        job = await claimed(command="exit 1", max_retries=2, attempts=1)
        now = utcnow()

        outcome = await handle_outcome(db_session, job, failure("fatal\n"), "worker-1", now=now)
        await db_session.commit()

        assert outcome.state == JobState.DEAD
        assert outcome.attempts == 2
        assert outcome.reason == "fatal"
        assert await JobRepository(db_session).get("job-1") is None

        entry = await DeadLetterRepository(db_session).latest("job-1")
        assert entry is not None
        assert entry.reason == "fatal"
        assert entry.moved_at == now
        assert entry.original["id"] == "job-1"
        assert entry.original["command"] == "exit 1"
        assert entry.original["state"] == "dead"
        assert entry.original["attempts"] == 2
        assert entry.original["max_retries"] == 2
        assert entry.original["last_error"] == "fatal"

    async def test_zero_retries_dead_after_first_failure(self, db_session, claimed):
        job = await claimed(max_retries=0)

        outcome = await handle_outcome(db_session, job, failure(), "worker-1")
        await db_session.commit()

        assert outcome.state == JobState.DEAD
        assert await DeadLetterRepository(db_session).count() == 1

    async def test_reason_is_truncated(self, db_session, claimed):
        job = await claimed()

        outcome = await handle_outcome(db_session, job, failure("x" * 10000), "worker-1")
        await db_session.commit()

        assert len(outcome.reason) == MAX_ERROR_LENGTH

    async def test_lost_ownership_writes_nothing(self, db_session, claimed):
        """Test a worker whose job was reclaimed cannot overwrite it."""
        job = await claimed()

        outcome = await handle_outcome(db_session, job, failure(), "worker-2")
        await db_session.commit()

        assert outcome.lost is True
        stored = await JobRepository(db_session).get("job-1")
        assert stored.state == JobState.PROCESSING
        assert stored.worker_id == "worker-1"
        assert stored.attempts == 0
        assert await DeadLetterRepository(db_session).count() == 0

    async def test_lost_ownership_on_success(self, db_session, claimed):
        job = await claimed()
        await JobRepository(db_session).reclaim_stale(utcnow() + timedelta(seconds=1))
        await db_session.commit()

        outcome = await handle_outcome(db_session, job, SUCCESS, "worker-1")
        await db_session.commit()

        assert outcome.lost is True
        assert (await JobRepository(db_session).get("job-1")).state == JobState.PENDING
