"""
Stale job reaper.

A worker that dies between claiming a job and handling its outcome leaves
the job in PROCESSING forever. The reaper periodically returns jobs whose
updated_at is older than reaper_stale_after_seconds to PENDING. Live
workers refresh updated_at while their command runs, so only abandoned
jobs qualify. A reclaimed job may run twice: delivery is at-least-once.
"""

import asyncio
import logging
import signal
from datetime import timedelta

from queuectl.config import get_settings
from queuectl.db import close_db, create_schema, get_session_context, init_db
from queuectl.db.models import utcnow
from queuectl.db.repository import JobRepository
from queuectl.observability.logging import setup_logging
from queuectl.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


class Reaper:
    """
    Periodic reclaim of abandoned PROCESSING jobs.

    Runs periodically to:
    1. Find PROCESSING jobs without a heartbeat for stale_after seconds
    2. Return them to PENDING, due immediately
    3. Record metrics for monitoring
    """

    def __init__(
        self,
        interval_seconds: int | None = None,
        stale_after_seconds: int | None = None,
    ):
        """
        Initialize the reaper.

        Args:
            interval_seconds: Seconds between reaper runs.
            stale_after_seconds: Age of updated_at that marks a job abandoned.
        """
        settings = get_settings()
        self.interval = interval_seconds or settings.reaper_interval_seconds
        self.stale_after = stale_after_seconds or settings.reaper_stale_after_seconds
        self._stop_event = asyncio.Event()
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the reaper loop."""
        logger.info(
            f"Reaper starting with interval {self.interval}s",
            extra={"stale_after_seconds": self.stale_after},
        )
        self._stop_event.clear()

        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in reaper loop: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass

        logger.info("Reaper stopped")

    async def stop(self) -> None:
        """Stop the reaper."""
        logger.info("Reaper stopping")
        self._stop_event.set()

    async def run_once(self) -> int:
        """
        Reclaim stale jobs once (for testing or cron-style execution).

        Returns:
            Number of jobs reclaimed.
        """
        stale_before = utcnow() - timedelta(seconds=self.stale_after)

        async with get_session_context() as session:
            count = await JobRepository(session).reclaim_stale(stale_before)

        if count > 0:
            self._metrics.record_jobs_reclaimed(count)

        return count


async def run_async() -> None:
    """Run the reaper asynchronously."""
    setup_logging("reaper")
    await init_db()
    await create_schema()

    reaper = Reaper()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(reaper.stop())
        )

    try:
        await reaper.start()
    finally:
        await close_db()


def run() -> None:
    """Run the reaper."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
