"""
Queue module.
Contains the retry policy and the operator-facing queue service.
"""

from queuectl.queue.policy import RetryAction, RetryDecision, backoff_delay, decide
from queuectl.queue.service import QueueService

__all__ = [
    "QueueService",
    "RetryAction",
    "RetryDecision",
    "backoff_delay",
    "decide",
]
