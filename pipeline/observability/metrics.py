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

from pipeline.constants import (
    METRIC_BOOTSTRAP_ATTEMPTS,
    METRIC_DELIVERIES,
    METRIC_DELIVERIES_IN_FLIGHT,
    METRIC_MESSAGES_SUBMITTED,
    METRIC_PROCESSING_DURATION,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the pipeline.

    Collects metrics for:
    - Message submissions
    - Delivery outcomes and processing duration
    - Deliveries currently in flight
    - Dependency bootstrap attempts
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.messages_submitted = Counter(
            METRIC_MESSAGES_SUBMITTED,
            "Total number of messages accepted and published",
            ["instance"],
            registry=self._registry,
        )

        self.deliveries = Counter(
            METRIC_DELIVERIES,
            "Total number of queue deliveries by terminal outcome",
            ["instance", "outcome"],
            registry=self._registry,
        )

        self.deliveries_in_flight = Gauge(
            METRIC_DELIVERIES_IN_FLIGHT,
            "Deliveries received but not yet acked or rejected",
            ["instance"],
            registry=self._registry,
        )

        self.processing_duration = Histogram(
            METRIC_PROCESSING_DURATION,
            "Simulated processing duration in seconds",
            ["instance", "outcome"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

        self.bootstrap_attempts = Counter(
            METRIC_BOOTSTRAP_ATTEMPTS,
            "Dependency connection attempts during startup",
            ["dependency", "outcome"],
            registry=self._registry,
        )

    def record_message_submitted(self, instance: str) -> None:
        """Record a published message."""
        self.messages_submitted.labels(instance=instance).inc()

    def record_delivery(self, instance: str, outcome: str, duration_seconds: float) -> None:
        """Record a delivery reaching a terminal state."""
        self.deliveries.labels(instance=instance, outcome=outcome).inc()
        self.processing_duration.labels(instance=instance, outcome=outcome).observe(
            duration_seconds
        )

    def set_in_flight(self, instance: str, count: int) -> None:
        """Update the number of in-flight deliveries."""
        self.deliveries_in_flight.labels(instance=instance).set(count)

    def record_bootstrap_attempt(self, dependency: str, success: bool) -> None:
        """Record one connection attempt."""
        outcome = "success" if success else "failure"
        self.bootstrap_attempts.labels(dependency=dependency, outcome=outcome).inc()

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
