"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from queuectl.constants import JobState


class JobResponse(BaseModel):
    """Full job details response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    command: str
    state: JobState
    attempts: int
    max_retries: int
    created_at: datetime
    updated_at: datetime
    next_run_at: datetime
    last_error: str | None
    worker_id: str | None


class EnqueueResponse(BaseModel):
    """Response body after enqueueing a job."""

    id: str
    state: JobState = JobState.PENDING
    message: str = "Job enqueued"


class JobListResponse(BaseModel):
    """Jobs ordered oldest first."""

    jobs: list[JobResponse]
    total: int


class StatusResponse(BaseModel):
    """Queue counts per state."""

    jobs: dict[str, int]
    dead_letters: int


class DeadLetterResponse(BaseModel):
    """A dead-lettered job."""

    id: str
    original: dict[str, Any]
    moved_at: datetime
    reason: str | None


class DeadLetterListResponse(BaseModel):
    """DLQ entries, most recent first."""

    entries: list[DeadLetterResponse]
    total: int


class DLQRetryResponse(BaseModel):
    """Response body after restoring a job from the DLQ."""

    id: str
    state: JobState
    attempts: int
    message: str = "Job requeued from DLQ"


class ConfigValueRequest(BaseModel):
    """Request body for setting a config value."""

    value: Any = Field(..., description="New value for the key")


class ConfigValueResponse(BaseModel):
    """A config key and its effective value."""

    key: str
    value: Any


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    timestamp: datetime
    jobs: dict[str, int] | None = None
    dead_letters: int | None = None
