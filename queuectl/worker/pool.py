"""
Worker pool.

Runs N independent worker loops in one event loop. Each loop claims a job,
runs its command, handles the outcome and starts over. Workers share
nothing but the pool's stop event: mutual exclusion between them comes
entirely from the atomic claim in JobRepository.claim_next.
"""

import asyncio
import logging
import os
from uuid import uuid4

from queuectl.config import get_settings
from queuectl.constants import SPAN_CLAIM_JOB, SPAN_EXECUTE_JOB, SPAN_HANDLE_OUTCOME
from queuectl.db import get_session_context
from queuectl.db.models import Job
from queuectl.db.repository import JobRepository
from queuectl.observability.logging import bind_context
from queuectl.observability.metrics import get_metrics
from queuectl.observability.tracing import get_tracer
from queuectl.types.job import Outcome
from queuectl.worker.executor import run_command
from queuectl.worker.outcome import handle_outcome

logger = logging.getLogger(__name__)


class WorkerPool:
    """
    A set of concurrent worker loops with cooperative shutdown.

    Features:
    - FIFO claiming of due jobs through the atomic claim
    - Heartbeat on updated_at while a command runs, so the reaper leaves
      live jobs alone
    - Loops survive any exception and back off before the next iteration
    - stop() drains: in-flight jobs finish, nothing is cancelled
    """

    def __init__(
        self,
        poll_interval: float | None = None,
        error_backoff: float | None = None,
        heartbeat_interval: float | None = None,
        job_timeout: float | None = None,
    ):
        """
        Initialize the pool.

        Args:
            poll_interval: Seconds to wait when no job is available.
            error_backoff: Seconds to wait after an unexpected error.
            heartbeat_interval: Seconds between updated_at refreshes while a
                command runs.
            job_timeout: Optional per-command time limit in seconds.
        """
        settings = get_settings()

        self.poll_interval = poll_interval if poll_interval is not None else settings.worker_poll_interval_seconds
        self.error_backoff = error_backoff if error_backoff is not None else settings.worker_error_backoff_seconds
        self.heartbeat_interval = (
            heartbeat_interval if heartbeat_interval is not None else settings.worker_heartbeat_interval_seconds
        )
        self.job_timeout = job_timeout if job_timeout is not None else settings.job_timeout_seconds

        self._stop_event = asyncio.Event()
        self._workers: dict[str, asyncio.Task] = {}
        self._metrics = get_metrics()

    @property
    def running(self) -> bool:
        """Whether any worker loop is still alive."""
        return any(not task.done() for task in self._workers.values())

    @property
    def worker_ids(self) -> list[str]:
        """Ids of the spawned worker loops."""
        return list(self._workers)

    async def start(self, count: int = 1) -> list[str]:
        """
        Spawn worker loops.

        Returns as soon as the loops are scheduled; they run until stop().

        Args:
            count: Number of loops to spawn.

        Returns:
            Ids of the new workers.
        """
        if count < 1:
            raise ValueError(f"worker count must be >= 1, got {count}")

        self._stop_event.clear()
        hostname = os.uname().nodename
        started = []

        for _ in range(count):
            worker_id = f"{hostname}-{os.getpid()}-{uuid4().hex[:8]}"
            self._workers[worker_id] = asyncio.create_task(
                self._run_loop(worker_id),
                name=worker_id,
            )
            started.append(worker_id)
            logger.info("Worker started", extra={"worker_id": worker_id})

        return started

    async def stop(self) -> None:
        """
        Stop all workers gracefully.

        Sets the stop flag and waits until every loop has finished the job
        it is running and exited. There is no timeout.
        """
        logger.info(
            "Stop requested, waiting for workers to finish their current job",
            extra={"workers": len(self._workers)},
        )
        self._stop_event.set()

        if self._workers:
            await asyncio.gather(*self._workers.values(), return_exceptions=True)
        self._workers.clear()

        logger.info("All workers stopped")

    async def _run_loop(self, worker_id: str) -> None:
        """Claim, execute and handle jobs until the stop flag is seen."""
        bind_context(worker_id=worker_id)

        while not self._stop_event.is_set():
            try:
                job = await self._claim(worker_id)
                if job is None:
                    await self._pause(self.poll_interval)
                    continue

                await self._process(job, worker_id)

            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": worker_id},
                )
                await self._pause(self.error_backoff)

        logger.info("Worker stopped", extra={"worker_id": worker_id})

    async def _pause(self, seconds: float) -> None:
        """Sleep, waking early if stop is requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass

    async def _claim(self, worker_id: str) -> Job | None:
        with get_tracer().start_as_current_span(SPAN_CLAIM_JOB):
            async with get_session_context() as session:
                job = await JobRepository(session).claim_next(worker_id)

        if job is not None:
            self._metrics.record_job_claimed()
        return job

    async def _process(self, job: Job, worker_id: str) -> Outcome:
        """
        Run a claimed job to its outcome.

        Args:
            job: The claimed job.
            worker_id: Its owner.

        Returns:
            The outcome that was persisted.
        """
        logger.info(
            "Executing job",
            extra={"job_id": job.id, "command": job.command, "attempt": job.attempts + 1},
        )

        heartbeat = asyncio.create_task(self._heartbeat(job.id, worker_id))
        try:
            with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
                span.set_attribute("job_id", job.id)
                span.set_attribute("attempt", job.attempts + 1)

                result = await run_command(job.command, timeout=self.job_timeout)
        finally:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass

        with get_tracer().start_as_current_span(SPAN_HANDLE_OUTCOME):
            async with get_session_context() as session:
                outcome = await handle_outcome(session, job, result, worker_id)

        label = "lost" if outcome.lost else outcome.state.value
        self._metrics.record_job_finished(label, result.duration_seconds)

        logger.info(
            "Job handled",
            extra={**outcome.as_log_extra(), "exit_code": result.exit_code},
        )
        return outcome

    async def _heartbeat(self, job_id: str, worker_id: str) -> None:
        """Periodically refresh updated_at on the job being executed."""
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                async with get_session_context() as session:
                    owned = await JobRepository(session).touch(job_id, worker_id)
                if not owned:
                    logger.warning(
                        "Heartbeat found job no longer owned",
                        extra={"job_id": job_id, "worker_id": worker_id},
                    )
                    return
            except Exception as e:
                logger.exception(f"Error in heartbeat: {e}", extra={"job_id": job_id})
