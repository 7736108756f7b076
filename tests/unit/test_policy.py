"""
Unit tests for the retry and backoff policy.
"""

from datetime import datetime, timedelta

import pytest

from queuectl.constants import MAX_BACKOFF_SECONDS
from queuectl.queue.policy import RetryAction, backoff_delay, decide

NOW = datetime(2025, 1, 1, 12, 0, 0)


class TestBackoffDelay:
    """Tests for backoff_delay."""

    def test_first_retry_waits_base(self):
        assert backoff_delay(1, 2) == 2

    def test_exponential_growth(self):
        assert backoff_delay(2, 2) == 4
        assert backoff_delay(3, 2) == 8
        assert backoff_delay(2, 3) == 9

    def test_zero_attempts(self):
        assert backoff_delay(0, 5) == 1

    @pytest.mark.parametrize("base", [1, 1.5, 2, 3, 10])
    def test_monotonic_in_attempts(self, base):
        """A later attempt never waits less than an earlier one."""
        delays = [backoff_delay(attempts, base) for attempts in range(0, 200)]

        assert all(earlier <= later for earlier, later in zip(delays, delays[1:]))

    def test_clamped_to_maximum(self):
        assert backoff_delay(1000, 2) == MAX_BACKOFF_SECONDS
        assert backoff_delay(10, 1000) == MAX_BACKOFF_SECONDS

    def test_base_one_is_constant(self):
        assert backoff_delay(50, 1) == 1

    def test_rejects_base_below_one(self):
        with pytest.raises(ValueError):
            backoff_delay(1, 0.5)

    def test_rejects_negative_attempts(self):
        with pytest.raises(ValueError):
            backoff_delay(-1, 2)


class TestDecide:
    """Tests for the retry/dead decision."""

    def test_retry_below_budget(self):
        decision = decide(attempts=1, max_retries=3, base=2, now=NOW)

        assert decision.action == RetryAction.RETRY
        assert decision.should_retry is True
        assert decision.attempts == 1
        assert decision.delay_seconds == 2
        assert decision.next_run_at == NOW + timedelta(seconds=2)

    def test_second_retry_backs_off_further(self):
        decision = decide(attempts=2, max_retries=3, base=2, now=NOW)

        assert decision.next_run_at == NOW + timedelta(seconds=4)

    def test_dead_when_budget_reached(self):
        decision = decide(attempts=3, max_retries=3, base=2, now=NOW)

        assert decision.action == RetryAction.DEAD
        assert decision.should_retry is False
        assert decision.next_run_at is None

    def test_dead_after_single_attempt_with_budget_one(self):
        decision = decide(attempts=1, max_retries=1, base=2, now=NOW)

        assert decision.action == RetryAction.DEAD

    def test_zero_budget_dies_immediately(self):
        decision = decide(attempts=1, max_retries=0, base=2, now=NOW)

        assert decision.action == RetryAction.DEAD
