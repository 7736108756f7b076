"""
Retry and backoff policy.

Pure functions: callers fetch the current backoff base and pass it in, so
operators can retune the policy for jobs that are already queued.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from queuectl.constants import MAX_BACKOFF_SECONDS


class RetryAction(StrEnum):
    """What to do with a job after a failed attempt."""

    RETRY = "retry"
    DEAD = "dead"


@dataclass(frozen=True)
class RetryDecision:
    """Result of applying the policy to a failed attempt."""

    action: RetryAction
    attempts: int
    delay_seconds: float = 0.0
    next_run_at: datetime | None = None

    @property
    def should_retry(self) -> bool:
        return self.action is RetryAction.RETRY


def backoff_delay(attempts: int, base: float) -> float:
    """
    Seconds to wait before the next attempt.

    ``base ** attempts``, where attempts already counts the failure being
    handled, so the first retry waits ``base`` seconds. Clamped to
    MAX_BACKOFF_SECONDS.

    Args:
        attempts: Attempts made so far, including the one that just failed.
        base: Exponential base, at least 1.

    Returns:
        Delay in seconds.
    """
    if attempts < 0:
        raise ValueError(f"attempts must be >= 0, got {attempts}")
    if base < 1:
        raise ValueError(f"backoff base must be >= 1, got {base}")

    # Compare exponents to avoid overflow on large attempt counts
    if base > 1 and attempts * math.log(base) >= math.log(MAX_BACKOFF_SECONDS):
        return float(MAX_BACKOFF_SECONDS)
    return float(base) ** attempts


def decide(
    attempts: int,
    max_retries: int,
    base: float,
    now: datetime,
) -> RetryDecision:
    """
    Decide between retrying and dead-lettering a failed job.

    Args:
        attempts: Attempts made so far, including the one that just failed.
        max_retries: The job's retry budget.
        base: Exponential backoff base.
        now: Reference time for next_run_at.

    Returns:
        RetryDecision: DEAD once attempts reach max_retries, RETRY otherwise.
    """
    if attempts >= max_retries:
        return RetryDecision(action=RetryAction.DEAD, attempts=attempts)

    delay = backoff_delay(attempts, base)
    return RetryDecision(
        action=RetryAction.RETRY,
        attempts=attempts,
        delay_seconds=delay,
        next_run_at=now + timedelta(seconds=delay),
    )
