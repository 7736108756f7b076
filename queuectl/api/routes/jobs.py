"""
Job management routes.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl.constants import API_V1_PREFIX, JobState
from queuectl.db import get_async_session
from queuectl.queue.service import QueueService
from queuectl.types.api import (
    EnqueueResponse,
    JobListResponse,
    JobResponse,
    StatusResponse,
)
from queuectl.types.job import EnqueueRequest

router = APIRouter(prefix=API_V1_PREFIX, tags=["Jobs"])


@router.post(
    "/jobs",
    response_model=EnqueueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enqueue a job",
    description="Submit a shell command. An existing job with the same id is replaced.",
)
async def enqueue_job(
    request: EnqueueRequest,
    session: AsyncSession = Depends(get_async_session),
) -> EnqueueResponse:
    """
    Enqueue a job.

    Args:
        request: Validated job submission.
        session: Database session.

    Returns:
        EnqueueResponse with the job id.
    """
    job_id = await QueueService(session).enqueue(request)
    await session.commit()

    return EnqueueResponse(id=job_id)


@router.get(
    "/jobs",
    response_model=JobListResponse,
    summary="List jobs",
    description="List queued and running jobs, oldest first.",
)
async def list_jobs(
    state: JobState | None = Query(default=None),
    session: AsyncSession = Depends(get_async_session),
) -> JobListResponse:
    """
    List jobs.

    Completed and dead jobs are not stored, so filtering on those states
    always returns an empty list.

    Args:
        state: Optional state filter.
        session: Database session.

    Returns:
        JobListResponse ordered by created_at ascending.
    """
    jobs = await QueueService(session).list_jobs(state)
    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=len(jobs),
    )


@router.get(
    "/jobs/{job_id}",
    response_model=JobResponse,
    summary="Get job details",
)
async def get_job(
    job_id: str,
    session: AsyncSession = Depends(get_async_session),
) -> JobResponse:
    """
    Get job details by ID.

    Raises:
        HTTPException: If the job is not in the store.
    """
    job = await QueueService(session).get_job(job_id)

    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )

    return JobResponse.model_validate(job)


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Queue status",
    description="Job counts per state and the number of DLQ entries.",
)
async def get_status(
    session: AsyncSession = Depends(get_async_session),
) -> StatusResponse:
    """Get job counts per state."""
    summary = await QueueService(session).status()
    return StatusResponse(**summary)
