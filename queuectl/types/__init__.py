"""
Type definitions for the job queue.
Contains input/output type definitions grouped by module.
"""

from queuectl.types.api import (
    ConfigValueRequest,
    ConfigValueResponse,
    DeadLetterListResponse,
    DeadLetterResponse,
    DLQRetryResponse,
    EnqueueResponse,
    HealthResponse,
    JobListResponse,
    JobResponse,
    StatusResponse,
)
from queuectl.types.job import (
    EnqueueRequest,
    ExecutionResult,
    Outcome,
)

__all__ = [
    # API types
    "EnqueueResponse",
    "JobResponse",
    "JobListResponse",
    "StatusResponse",
    "DeadLetterResponse",
    "DeadLetterListResponse",
    "DLQRetryResponse",
    "ConfigValueRequest",
    "ConfigValueResponse",
    "HealthResponse",
    # Job types
    "EnqueueRequest",
    "ExecutionResult",
    "Outcome",
]
