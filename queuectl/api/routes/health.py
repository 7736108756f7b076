"""
Health check routes.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl import __version__
from queuectl.db import get_async_session
from queuectl.db.models import utcnow
from queuectl.observability.metrics import get_metrics
from queuectl.queue.service import QueueService
from queuectl.types.api import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check database connectivity and report job and DLQ counts.",
)
async def health_check(
    session: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """
    Perform a health check.

    Reads the job and DLQ tables, so a reachable database with a missing or
    broken schema reports as degraded. Counts are included when available.
    """
    try:
        summary = await QueueService(session).status()
    except Exception:
        logger.exception("Health check could not read the queue store")
        await session.rollback()
        return HealthResponse(
            status="degraded",
            version=__version__,
            database="unhealthy",
            timestamp=utcnow(),
        )

    return HealthResponse(
        status="healthy",
        version=__version__,
        database="healthy",
        timestamp=utcnow(),
        jobs=summary["jobs"],
        dead_letters=summary["dead_letters"],
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    try:
        await session.execute(text("SELECT 1"))
        return {"ready": True}
    except Exception:
        return {"ready": False}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
