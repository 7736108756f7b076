"""
Operator-facing queue operations.

Everything a front end needs: enqueue, listing, status, DLQ inspection and
replay, config. Validation and not-found conditions raise errors from
queuectl.errors; job execution failures never surface here.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl.constants import (
    CONFIG_DEFAULTS,
    CONFIG_MAX_RETRIES,
    DEFAULT_MAX_RETRIES,
    SPAN_DLQ_RETRY,
    SPAN_ENQUEUE_JOB,
    JobState,
)
from queuectl.db.models import DeadLetter, Job, new_job_id, parse_snapshot_time, utcnow
from queuectl.db.repository import ConfigRepository, DeadLetterRepository, JobRepository
from queuectl.errors import DeadLetterNotFoundError, JobAlreadyExistsError, JobValidationError
from queuectl.observability.metrics import get_metrics
from queuectl.observability.tracing import get_tracer
from queuectl.queue.config_values import coerce_max_retries, validate_config_value
from queuectl.types.job import EnqueueRequest

logger = logging.getLogger(__name__)


class QueueService:
    """
    Queue operations bound to one database session.

    The caller owns the session and its transaction, so multi-step
    operations such as DLQ retry commit or roll back as a unit.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the service with a database session.

        Args:
            session: The async database session.
        """
        self._session = session
        self._jobs = JobRepository(session)
        self._dead_letters = DeadLetterRepository(session)
        self._config = ConfigRepository(session)

    async def enqueue(self, spec: EnqueueRequest | Mapping[str, Any]) -> str:
        """
        Add a job, replacing any job with the same explicit id.

        Args:
            spec: Validated request, or a raw mapping to validate.

        Returns:
            The job id.

        Raises:
            JobValidationError: If the request is malformed.
        """
        if not isinstance(spec, EnqueueRequest):
            try:
                spec = EnqueueRequest.model_validate(spec)
            except ValidationError as e:
                raise JobValidationError(str(e)) from e

        with get_tracer().start_as_current_span(SPAN_ENQUEUE_JOB) as span:
            if spec.max_retries is not None:
                max_retries = spec.max_retries
            else:
                max_retries = coerce_max_retries(
                    await self._config.get(CONFIG_MAX_RETRIES, DEFAULT_MAX_RETRIES)
                )

            now = utcnow()
            job = Job(
                id=spec.id or new_job_id(),
                command=spec.command,
                state=JobState.PENDING,
                attempts=spec.attempts,
                max_retries=max_retries,
                created_at=spec.created_at or now,
                updated_at=now,
                next_run_at=now,
                last_error=None,
                worker_id=None,
            )
            span.set_attribute("job_id", job.id)

            stored = await self._jobs.upsert(job)

        get_metrics().record_job_enqueued()
        logger.info(
            "Job enqueued",
            extra={"job_id": stored.id, "command": stored.command, "max_retries": max_retries},
        )
        return stored.id

    async def list_jobs(self, state: JobState | None = None) -> Sequence[Job]:
        """Jobs in the store, oldest first, optionally filtered by state."""
        return await self._jobs.query(state)

    async def get_job(self, job_id: str) -> Job | None:
        """A single job, or None once it has completed or been dead-lettered."""
        return await self._jobs.get(job_id)

    async def status(self) -> dict[str, Any]:
        """
        Counts per state.

        Returns:
            ``{"jobs": {state: count}, "dead_letters": count}``.
        """
        counts = await self._jobs.count_by_state()
        get_metrics().update_queue_depth(counts)
        return {
            "jobs": counts,
            "dead_letters": await self._dead_letters.count(),
        }

    async def dlq_list(self) -> Sequence[DeadLetter]:
        """DLQ entries, most recently moved first."""
        return await self._dead_letters.list_entries()

    async def dlq_retry(self, job_id: str) -> Job:
        """
        Restore the latest DLQ entry for a job id as a fresh pending job.

        The new job keeps the original id, command, max_retries and
        created_at; attempts restart at 0 and it is due immediately. The
        insert and the entry removal share the caller's transaction.

        Args:
            job_id: The original job id.

        Returns:
            The restored Job.

        Raises:
            DeadLetterNotFoundError: If no entry exists for the id.
            JobAlreadyExistsError: If a live job already uses the id.
        """
        with get_tracer().start_as_current_span(SPAN_DLQ_RETRY) as span:
            span.set_attribute("job_id", job_id)

            entry = await self._dead_letters.latest(job_id)
            if entry is None:
                raise DeadLetterNotFoundError(job_id)

            if await self._jobs.get(job_id) is not None:
                raise JobAlreadyExistsError(job_id)

            original = entry.original
            now = utcnow()
            job = Job(
                id=job_id,
                command=original["command"],
                state=JobState.PENDING,
                attempts=0,
                max_retries=original.get("max_retries", DEFAULT_MAX_RETRIES),
                created_at=parse_snapshot_time(original.get("created_at")) or now,
                updated_at=now,
                next_run_at=now,
                last_error=None,
                worker_id=None,
            )
            # A concurrent retry may have restored the job since the check above
            restored = await self._jobs.insert(job)
            if restored is None:
                raise JobAlreadyExistsError(job_id)
            if not await self._dead_letters.remove(entry):
                raise DeadLetterNotFoundError(job_id)

        get_metrics().record_dlq_retried()
        logger.info("Job requeued from DLQ", extra={"job_id": job_id})
        return restored

    async def get_config(self, key: str, fallback: Any = None) -> Any:
        """
        Effective value of a config key.

        Known policy keys fall back to their built-in defaults.
        """
        if fallback is None:
            fallback = CONFIG_DEFAULTS.get(key)
        return await self._config.get(key, fallback)

    async def set_config(self, key: str, value: Any) -> Any:
        """
        Store a config value.

        Returns:
            The value as stored.

        Raises:
            ConfigValidationError: If a known key gets an unusable value.
        """
        normalized = validate_config_value(key, value)
        await self._config.set(key, normalized)
        return normalized
