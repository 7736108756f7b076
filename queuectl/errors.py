"""
Exceptions raised to operator-facing callers.

Job execution failures never surface here: they are absorbed into job state
transitions by the outcome handler.
"""


class QueueError(RuntimeError):
    """Base class for queue errors."""


class JobValidationError(QueueError, ValueError):
    """Enqueue request is malformed or missing required fields."""


class ConfigValidationError(QueueError, ValueError):
    """Config value is not acceptable for its key."""


class DeadLetterNotFoundError(QueueError, LookupError):
    """No dead letter entry exists for the requested job id."""

    def __init__(self, job_id: str):
        super().__init__(f"DLQ entry not found: {job_id}")
        self.job_id = job_id


class JobAlreadyExistsError(QueueError):
    """A live job already uses the id a DLQ retry wants to restore."""

    def __init__(self, job_id: str):
        super().__init__(f"Job already exists: {job_id}")
        self.job_id = job_id
