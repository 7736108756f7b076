"""
Outcome handling for executed jobs.

Turns an ExecutionResult into exactly one job store transition: delete on
success, requeue with backoff, or move to the dead letter queue.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from queuectl.constants import (
    CONFIG_BACKOFF_BASE,
    DEFAULT_BACKOFF_BASE,
    MAX_ERROR_LENGTH,
    JobState,
)
from queuectl.db.models import Job, utcnow
from queuectl.db.repository import ConfigRepository, DeadLetterRepository, JobRepository
from queuectl.queue.config_values import coerce_backoff_base
from queuectl.queue.policy import decide
from queuectl.types.job import ExecutionResult, Outcome

logger = logging.getLogger(__name__)


async def handle_outcome(
    session: AsyncSession,
    job: Job,
    result: ExecutionResult,
    worker_id: str,
    now: datetime | None = None,
) -> Outcome:
    """
    Apply the retry policy to an execution result and persist the transition.

    Every write is guarded by ownership: if the reaper handed the job to
    another worker meanwhile, nothing is written and the outcome is marked
    lost. The caller commits the session, so the dead-letter insert and the
    job delete land in the same transaction.

    Args:
        session: Open database session.
        job: The claimed job, as returned by the claim.
        result: What running its command produced.
        worker_id: The worker that claimed the job.
        now: Reference time. Defaults to the current time.

    Returns:
        Outcome describing the transition.
    """
    now = now or utcnow()
    jobs = JobRepository(session)

    if result.success:
        deleted = await jobs.delete(job.id, owner=worker_id)
        if not deleted:
            return _lost(job, worker_id)

        logger.info("Job completed", extra={"job_id": job.id, "attempts": job.attempts + 1})
        return Outcome(job_id=job.id, state=JobState.COMPLETED, attempts=job.attempts + 1)

    attempts = job.attempts + 1
    reason = result.failure_reason[:MAX_ERROR_LENGTH]

    # Read at decision time so operators can retune jobs already in flight
    stored_base = await ConfigRepository(session).get(CONFIG_BACKOFF_BASE, DEFAULT_BACKOFF_BASE)
    base = coerce_backoff_base(stored_base)

    decision = decide(attempts, job.max_retries, base, now)

    if decision.should_retry:
        updated = await jobs.update(
            job.id,
            {
                "state": JobState.PENDING,
                "attempts": attempts,
                "next_run_at": decision.next_run_at,
                "last_error": reason,
                "updated_at": now,
                "worker_id": None,
            },
            owner=worker_id,
        )
        if not updated:
            return _lost(job, worker_id)

        logger.info(
            "Job failed, retry scheduled",
            extra={
                "job_id": job.id,
                "attempts": attempts,
                "delay_seconds": decision.delay_seconds,
                "error": reason,
            },
        )
        return Outcome(
            job_id=job.id,
            state=JobState.FAILED,
            attempts=attempts,
            next_run_at=decision.next_run_at,
            reason=reason,
        )

    deleted = await jobs.delete(job.id, owner=worker_id)
    if not deleted:
        return _lost(job, worker_id)

    snapshot = {
        **job.snapshot(),
        "state": JobState.DEAD.value,
        "attempts": attempts,
        "last_error": reason,
        "updated_at": now.isoformat(),
        "worker_id": None,
    }
    await DeadLetterRepository(session).add(job.id, snapshot, reason=reason, moved_at=now)

    return Outcome(job_id=job.id, state=JobState.DEAD, attempts=attempts, reason=reason)


def _lost(job: Job, worker_id: str) -> Outcome:
    logger.warning(
        "Worker no longer owns job, outcome discarded",
        extra={"job_id": job.id, "worker_id": worker_id},
    )
    return Outcome(job_id=job.id, state=JobState(job.state), attempts=job.attempts, lost=True)
