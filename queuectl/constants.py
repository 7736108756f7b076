"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobState(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - PENDING -> PROCESSING (claimed by a worker)
    - PROCESSING -> COMPLETED (success, row deleted)
    - PROCESSING -> PENDING (failed, retry after backoff)
    - PROCESSING -> DEAD (retries exhausted, moved to DLQ)
    - PROCESSING -> PENDING (stale, reclaimed by the reaper)

    COMPLETED and DEAD are never stored in the jobs table. FAILED only
    labels an outcome that was requeued.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD = "dead"


# States a row in the jobs table can hold
STORED_JOB_STATES: tuple[JobState, ...] = (JobState.PENDING, JobState.PROCESSING)

# Config store keys and their fallbacks
CONFIG_MAX_RETRIES = "max_retries"
CONFIG_BACKOFF_BASE = "backoff_base"

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 2

CONFIG_DEFAULTS: dict[str, int] = {
    CONFIG_MAX_RETRIES: DEFAULT_MAX_RETRIES,
    CONFIG_BACKOFF_BASE: DEFAULT_BACKOFF_BASE,
}

# Largest value the integer columns hold on every backend (int4 on PostgreSQL)
MAX_COUNTER_VALUE = 2**31 - 1

# Upper bound for a single backoff delay (7 days)
MAX_BACKOFF_SECONDS = 7 * 24 * 60 * 60

# Longest failure reason stored on a job or DLQ entry
MAX_ERROR_LENGTH = 4000

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "queuectl_queue_depth"
METRIC_JOBS_ENQUEUED = "queuectl_jobs_enqueued_total"
METRIC_JOBS_CLAIMED = "queuectl_jobs_claimed_total"
METRIC_JOBS_FINISHED = "queuectl_jobs_finished_total"
METRIC_JOB_DURATION = "queuectl_job_duration_seconds"
METRIC_JOBS_RECLAIMED = "queuectl_jobs_reclaimed_total"
METRIC_DLQ_RETRIED = "queuectl_dlq_retried_total"

# Trace span names
SPAN_ENQUEUE_JOB = "enqueue_job"
SPAN_CLAIM_JOB = "claim_job"
SPAN_EXECUTE_JOB = "execute_job"
SPAN_HANDLE_OUTCOME = "handle_outcome"
SPAN_DLQ_RETRY = "dlq_retry"
