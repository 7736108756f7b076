"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from queuectl.constants import (
    METRIC_DLQ_RETRIED,
    METRIC_JOB_DURATION,
    METRIC_JOBS_CLAIMED,
    METRIC_JOBS_ENQUEUED,
    METRIC_JOBS_FINISHED,
    METRIC_JOBS_RECLAIMED,
    METRIC_QUEUE_DEPTH,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the job queue.

    Collects metrics for:
    - Queue depth per state
    - Enqueues, claims and reclaims
    - Job outcomes and command duration
    - DLQ replays
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of jobs in the job store",
            ["state"],
            registry=self._registry,
        )

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            registry=self._registry,
        )

        self.jobs_claimed = Counter(
            METRIC_JOBS_CLAIMED,
            "Total number of jobs claimed",
            registry=self._registry,
        )

        # outcome is completed, failed (requeued), dead or lost
        self.jobs_finished = Counter(
            METRIC_JOBS_FINISHED,
            "Total number of job executions handled",
            ["outcome"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Command execution duration in seconds",
            ["outcome"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 600.0),
            registry=self._registry,
        )

        self.jobs_reclaimed = Counter(
            METRIC_JOBS_RECLAIMED,
            "Total number of stale processing jobs returned to pending",
            registry=self._registry,
        )

        self.dlq_retried = Counter(
            METRIC_DLQ_RETRIED,
            "Total number of jobs requeued from the DLQ",
            registry=self._registry,
        )

    def record_job_enqueued(self) -> None:
        """Record a job submission."""
        self.jobs_enqueued.inc()

    def record_job_claimed(self) -> None:
        """Record a successful claim."""
        self.jobs_claimed.inc()

    def record_job_finished(self, outcome: str, duration_seconds: float) -> None:
        """Record how an execution ended."""
        self.jobs_finished.labels(outcome=outcome).inc()
        self.job_duration.labels(outcome=outcome).observe(duration_seconds)

    def record_jobs_reclaimed(self, count: int) -> None:
        """Record reaper reclaims."""
        self.jobs_reclaimed.inc(count)

    def record_dlq_retried(self) -> None:
        """Record a DLQ replay."""
        self.dlq_retried.inc()

    def update_queue_depth(self, counts: dict[str, int]) -> None:
        """Update queue depth from a state -> count mapping."""
        for state, count in counts.items():
            self.queue_depth.labels(state=state).set(count)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
