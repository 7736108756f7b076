"""
Repositories for database operations.
Implements the data access contract for jobs, dead letters and config.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from queuectl.constants import STORED_JOB_STATES, JobState
from queuectl.db.models import ConfigEntry, DeadLetter, Job, utcnow

logger = logging.getLogger(__name__)

_JOB_COLUMNS = (
    "command",
    "state",
    "attempts",
    "max_retries",
    "created_at",
    "updated_at",
    "next_run_at",
    "last_error",
    "worker_id",
)


def _job_values(job: Job) -> dict[str, Any]:
    return {"id": job.id, **{column: getattr(job, column) for column in _JOB_COLUMNS}}


def _dialect_insert(session: AsyncSession):
    """Pick the INSERT construct that supports ON CONFLICT for this backend."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Unsupported database dialect for upsert: {name}")


class JobRepository:
    """
    Repository for job database operations.

    Implements atomic operations for:
    - Job submission as insert-or-replace
    - Claiming with a single conditional UPDATE ... RETURNING
    - Owner-guarded requeue and delete
    - Stale job reclaim for the reaper
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    async def upsert(self, job: Job) -> Job:
        """
        Insert the job or fully replace the row with the same id.

        Args:
            job: A transient Job carrying every column value.

        Returns:
            The stored Job.
        """
        insert = _dialect_insert(self._session)
        stmt = insert(Job).values(**_job_values(job))
        stmt = (
            stmt.on_conflict_do_update(
                index_elements=[Job.id],
                set_={column: stmt.excluded[column] for column in _JOB_COLUMNS},
            )
            .returning(Job)
            .execution_options(populate_existing=True)
        )

        result = await self._session.execute(stmt)
        stored = result.scalar_one()

        logger.info(
            "Upserted job",
            extra={"job_id": stored.id, "max_retries": stored.max_retries},
        )
        return stored

    async def insert(self, job: Job) -> Job | None:
        """
        Insert the job unless a row with the same id already exists.

        Args:
            job: A transient Job carrying every column value.

        Returns:
            The stored Job, or None if the id was taken.
        """
        insert = _dialect_insert(self._session)
        stmt = (
            insert(Job)
            .values(**_job_values(job))
            .on_conflict_do_nothing(index_elements=[Job.id])
            .returning(Job)
            .execution_options(populate_existing=True)
        )

        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, job_id: str) -> Job | None:
        """
        Get a job by ID.

        Args:
            job_id: The job id.

        Returns:
            The Job or None if not found.
        """
        stmt = select(Job).where(Job.id == job_id).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def query(self, state: JobState | None = None) -> Sequence[Job]:
        """
        List jobs, oldest first.

        Args:
            state: Optional state filter.

        Returns:
            Jobs ordered by created_at ascending.
        """
        stmt = (
            select(Job)
            .order_by(Job.created_at.asc(), Job.id.asc())
            .execution_options(populate_existing=True)
        )
        if state is not None:
            stmt = stmt.where(Job.state == state)

        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def claim_next(self, worker_id: str, now: datetime | None = None) -> Job | None:
        """
        Claim the oldest pending job that is due.

        This is the only mutual exclusion mechanism between workers. The
        eligibility check and the state transition run as one UPDATE
        statement. On PostgreSQL the candidate row is locked with
        FOR UPDATE SKIP LOCKED so concurrent claimers move on to other rows;
        SQLite serializes writers, which makes the statement indivisible.

        Args:
            worker_id: The claiming worker.
            now: Claim time. Defaults to the current time.

        Returns:
            The claimed Job, or None when nothing is eligible.
        """
        now = now or utcnow()

        # Aliased so the subquery keeps its own FROM instead of correlating
        # to the table being updated
        eligible = aliased(Job)
        candidate = (
            select(eligible.id)
            .where(
                and_(
                    eligible.state == JobState.PENDING,
                    eligible.next_run_at <= now,
                )
            )
            .order_by(eligible.created_at.asc(), eligible.id.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )

        stmt = (
            update(Job)
            .where(
                and_(
                    Job.id == candidate,
                    Job.state == JobState.PENDING,
                )
            )
            .values(
                state=JobState.PROCESSING,
                worker_id=worker_id,
                updated_at=now,
            )
            .returning(Job)
            .execution_options(synchronize_session=False, populate_existing=True)
        )

        result = await self._session.execute(stmt)
        job = result.scalar_one_or_none()

        if job is not None:
            logger.info(
                "Claimed job",
                extra={"job_id": job.id, "worker_id": worker_id, "attempts": job.attempts},
            )

        return job

    async def update(
        self,
        job_id: str,
        fields: dict[str, Any],
        owner: str | None = None,
    ) -> bool:
        """
        Apply a partial update to one job.

        Args:
            job_id: The job id.
            fields: Column values to set.
            owner: When given, only update while this worker still owns the
                job in PROCESSING.

        Returns:
            True if a row was updated.
        """
        conditions = [Job.id == job_id]
        if owner is not None:
            conditions += [Job.worker_id == owner, Job.state == JobState.PROCESSING]

        stmt = (
            update(Job)
            .where(and_(*conditions))
            .values(**fields)
            .execution_options(synchronize_session=False)
        )

        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def delete(self, job_id: str, owner: str | None = None) -> bool:
        """
        Remove a job.

        Args:
            job_id: The job id.
            owner: When given, only delete while this worker still owns the
                job in PROCESSING.

        Returns:
            True if a row was deleted.
        """
        conditions = [Job.id == job_id]
        if owner is not None:
            conditions += [Job.worker_id == owner, Job.state == JobState.PROCESSING]

        stmt = delete(Job).where(and_(*conditions)).execution_options(synchronize_session=False)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def count_by_state(self) -> dict[str, int]:
        """
        Get job counts by state.

        Returns:
            Dictionary of state -> count, with every stored state present.
        """
        stmt = select(Job.state, func.count()).group_by(Job.state)
        result = await self._session.execute(stmt)

        counts = {state.value: 0 for state in STORED_JOB_STATES}
        for state, count in result.all():
            counts[state] = count
        return counts

    async def touch(self, job_id: str, worker_id: str) -> bool:
        """
        Refresh updated_at on a job the worker is executing (heartbeat).

        Args:
            job_id: The job id.
            worker_id: The owning worker.

        Returns:
            True if the worker still owns the job.
        """
        return await self.update(job_id, {"updated_at": utcnow()}, owner=worker_id)

    async def reclaim_stale(self, stale_before: datetime) -> int:
        """
        Return PROCESSING jobs without a recent heartbeat to PENDING.

        Called by the reaper to recover jobs whose worker died between claim
        and outcome. Attempts are left unchanged.

        Args:
            stale_before: Jobs last updated before this instant are reclaimed.

        Returns:
            Number of reclaimed jobs.
        """
        now = utcnow()
        stmt = (
            update(Job)
            .where(
                and_(
                    Job.state == JobState.PROCESSING,
                    Job.updated_at < stale_before,
                )
            )
            .values(
                state=JobState.PENDING,
                worker_id=None,
                updated_at=now,
                next_run_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        result = await self._session.execute(stmt)
        count = result.rowcount

        if count > 0:
            logger.warning(f"Reclaimed {count} stale processing jobs")

        return count


class DeadLetterRepository:
    """Repository for the dead letter queue."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(
        self,
        job_id: str,
        snapshot: dict[str, Any],
        reason: str | None,
        moved_at: datetime | None = None,
    ) -> DeadLetter:
        """
        Store a snapshot of a job that exhausted its retries.

        Args:
            job_id: The original job id.
            snapshot: Job.snapshot() output with the final attempt count.
            reason: The terminal error message.
            moved_at: When the job was dead-lettered.

        Returns:
            The new DeadLetter entry.
        """
        entry = DeadLetter(
            job_id=job_id,
            original=snapshot,
            reason=reason,
            moved_at=moved_at or utcnow(),
        )
        self._session.add(entry)
        await self._session.flush()

        logger.warning(
            "Job moved to DLQ",
            extra={"job_id": job_id, "attempts": snapshot.get("attempts")},
        )
        return entry

    async def list_entries(self) -> Sequence[DeadLetter]:
        """List entries, most recently moved first."""
        stmt = select(DeadLetter).order_by(
            DeadLetter.moved_at.desc(),
            DeadLetter.entry_id.desc(),
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def latest(self, job_id: str) -> DeadLetter | None:
        """
        Get the most recent entry for a job id.

        Args:
            job_id: The original job id.

        Returns:
            The DeadLetter or None if the job is not in the DLQ.
        """
        stmt = (
            select(DeadLetter)
            .where(DeadLetter.job_id == job_id)
            .order_by(DeadLetter.moved_at.desc(), DeadLetter.entry_id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def remove(self, entry: DeadLetter) -> bool:
        """
        Delete one entry.

        Returns:
            True if the entry was still present.
        """
        stmt = (
            delete(DeadLetter)
            .where(DeadLetter.entry_id == entry.entry_id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def count(self) -> int:
        """Number of entries in the DLQ."""
        result = await self._session.execute(select(func.count()).select_from(DeadLetter))
        return result.scalar() or 0


class ConfigRepository:
    """Repository for runtime config overrides."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, key: str, fallback: Any = None) -> Any:
        """
        Read a config value.

        Args:
            key: Config key.
            fallback: Returned when the key has never been set.

        Returns:
            The stored value or the fallback.
        """
        stmt = select(ConfigEntry.value).where(ConfigEntry.key == key)
        result = await self._session.execute(stmt)
        row = result.first()
        return fallback if row is None else row[0]

    async def set(self, key: str, value: Any) -> None:
        """
        Insert or replace a config value.

        Args:
            key: Config key.
            value: Any JSON-serializable value.
        """
        insert = _dialect_insert(self._session)
        stmt = insert(ConfigEntry).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ConfigEntry.key],
            set_={"value": stmt.excluded.value},
        )
        await self._session.execute(stmt)

        logger.info("Config updated", extra={"key": key})
