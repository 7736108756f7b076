"""
Unit tests for metrics and logging setup.
"""

import structlog
from prometheus_client import CollectorRegistry

from queuectl.observability.logging import setup_logging
from queuectl.observability.metrics import MetricsCollector


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_claims_counted_without_per_worker_series(self):
        """Test claims from many workers land in a single series."""
        registry = CollectorRegistry()
        metrics = MetricsCollector(registry=registry)

        for _ in range(3):
            metrics.record_job_claimed()

        assert registry.get_sample_value("queuectl_jobs_claimed_total") == 3
        samples = [
            sample
            for metric in registry.collect()
            if metric.name == "queuectl_jobs_claimed"
            for sample in metric.samples
            if sample.name == "queuectl_jobs_claimed_total"
        ]
        assert len(samples) == 1
        assert samples[0].labels == {}

    def test_finished_and_queue_depth(self):
        registry = CollectorRegistry()
        metrics = MetricsCollector(registry=registry)

        metrics.record_job_finished("dead", 0.5)
        metrics.update_queue_depth({"pending": 4, "processing": 1})

        assert registry.get_sample_value("queuectl_jobs_finished_total", {"outcome": "dead"}) == 1
        assert registry.get_sample_value("queuectl_queue_depth", {"state": "pending"}) == 4
        assert registry.get_sample_value("queuectl_queue_depth", {"state": "processing"}) == 1


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_binds_component(self):
        structlog.contextvars.clear_contextvars()
        try:
            setup_logging("reaper")

            assert structlog.contextvars.get_contextvars()["component"] == "reaper"
        finally:
            structlog.contextvars.clear_contextvars()

    def test_without_component(self):
        structlog.contextvars.clear_contextvars()
        setup_logging()

        assert "component" not in structlog.contextvars.get_contextvars()
