"""
Worker module.
Contains the command executor, outcome handling and the worker pool.
"""

from queuectl.worker.pool import WorkerPool

__all__ = ["WorkerPool"]
