"""
Worker process entry point.

Starts a WorkerPool and drains it on SIGTERM/SIGINT: the process exits
only after every in-flight job has been handled.
"""

import asyncio
import logging
import signal

from queuectl.config import get_settings
from queuectl.db import close_db, create_schema, init_db
from queuectl.observability.logging import setup_logging
from queuectl.observability.metrics import setup_metrics
from queuectl.observability.tracing import setup_tracing
from queuectl.worker.pool import WorkerPool

logger = logging.getLogger(__name__)


async def run_async(count: int | None = None) -> None:
    """
    Run the worker pool until a shutdown signal arrives.

    Args:
        count: Number of worker loops. Defaults to the worker_count setting.
    """
    setup_logging("worker")
    setup_metrics()
    setup_tracing()
    await init_db()
    await create_schema()

    settings = get_settings()
    pool = WorkerPool()
    shutdown = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await pool.start(count or settings.worker_count)
        await shutdown.wait()
        logger.info("Shutdown signal received, draining workers")
        await pool.stop()
    finally:
        await close_db()


def run() -> None:
    """Run the worker pool."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
