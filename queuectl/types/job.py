"""
Job-related type definitions for internal use.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from queuectl.constants import MAX_COUNTER_VALUE, JobState


class EnqueueRequest(BaseModel):
    """
    A job submission.

    Only the fields below are accepted; anything else is rejected before the
    request reaches the store.
    """

    model_config = ConfigDict(extra="forbid")

    id: str | None = Field(default=None, min_length=1, max_length=255)
    command: str = Field(..., min_length=1)
    max_retries: int | None = Field(default=None, ge=0, le=MAX_COUNTER_VALUE)
    attempts: int = Field(default=0, ge=0, le=MAX_COUNTER_VALUE)
    created_at: datetime | None = None

    @field_validator("command")
    @classmethod
    def command_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("command must not be blank")
        return value

    @field_validator("created_at")
    @classmethod
    def created_at_naive_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(UTC).replace(tzinfo=None)
        return value


@dataclass
class ExecutionResult:
    """
    Normalized result of running a job's command.

    exit_code is None when the process could not be started or was killed
    after a timeout; error then carries the explanation.
    """

    success: bool
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    duration_seconds: float = 0.0

    @property
    def failure_reason(self) -> str:
        """Message recorded as last_error / DLQ reason for a failed run."""
        if self.error:
            return self.error
        if self.stderr.strip():
            return self.stderr.strip()
        return f"Command exited with code {self.exit_code}"


@dataclass
class Outcome:
    """
    What the outcome handler did with an execution result.

    state is COMPLETED, FAILED (requeued), or DEAD. lost is True when the
    worker no longer owned the job and nothing was written.
    """

    job_id: str
    state: JobState
    attempts: int
    next_run_at: datetime | None = None
    reason: str | None = None
    lost: bool = False

    def as_log_extra(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "final_state": self.state.value,
            "attempts": self.attempts,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
        }
