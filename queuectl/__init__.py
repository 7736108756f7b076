"""
queuectl - Durable Command Queue

A durable shell-command job queue with an atomic claim protocol, exponential
retry backoff, a dead letter queue and a gracefully draining worker pool.
"""

__version__ = "1.0.0"
