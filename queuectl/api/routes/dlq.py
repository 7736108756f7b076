"""
Dead letter queue routes.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl.constants import API_V1_PREFIX, JobState
from queuectl.db import get_async_session
from queuectl.errors import DeadLetterNotFoundError, JobAlreadyExistsError
from queuectl.queue.service import QueueService
from queuectl.types.api import (
    DeadLetterListResponse,
    DeadLetterResponse,
    DLQRetryResponse,
)

router = APIRouter(prefix=f"{API_V1_PREFIX}/dlq", tags=["DLQ"])


@router.get(
    "",
    response_model=DeadLetterListResponse,
    summary="List DLQ entries",
    description="Dead-lettered jobs, most recent first.",
)
async def list_dead_letters(
    session: AsyncSession = Depends(get_async_session),
) -> DeadLetterListResponse:
    """List DLQ entries."""
    entries = await QueueService(session).dlq_list()
    return DeadLetterListResponse(
        entries=[
            DeadLetterResponse(
                id=entry.job_id,
                original=entry.original,
                moved_at=entry.moved_at,
                reason=entry.reason,
            )
            for entry in entries
        ],
        total=len(entries),
    )


@router.post(
    "/{job_id}/retry",
    response_model=DLQRetryResponse,
    summary="Retry a job from the DLQ",
    description="Requeue a dead-lettered job with its attempts reset.",
)
async def retry_dead_letter(
    job_id: str,
    session: AsyncSession = Depends(get_async_session),
) -> DLQRetryResponse:
    """
    Requeue a job from the DLQ.

    Raises:
        HTTPException: 404 if the job is not in the DLQ, 409 if a live job
            already uses its id.
    """
    try:
        job = await QueueService(session).dlq_retry(job_id)
    except DeadLetterNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="DLQ entry not found",
        )
    except JobAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A job with this id is already queued",
        )

    await session.commit()

    return DLQRetryResponse(
        id=job.id,
        state=JobState(job.state),
        attempts=job.attempts,
    )
