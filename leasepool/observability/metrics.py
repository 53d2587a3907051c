"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from leasepool.constants import (
    METRIC_KEEPALIVE_ERRORS,
    METRIC_LEASE_ACQUIRED,
    METRIC_LEASE_HELD,
    METRIC_LEASE_LOST,
    METRIC_LEASE_RELEASED,
    METRIC_LEASE_RENEWED,
    METRIC_LEASE_UNAVAILABLE,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the lease lifecycle.

    Collects metrics for:
    - Lease acquisitions and contention
    - Renewals, losses and releases
    - Keep-alive failures
    - Whether this instance currently holds a lease
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.lease_acquired = Counter(
            METRIC_LEASE_ACQUIRED,
            "Total number of leases acquired",
            ["instance_id"],
            registry=self._registry,
        )

        self.lease_unavailable = Counter(
            METRIC_LEASE_UNAVAILABLE,
            "Total number of acquisition attempts that found no free lease",
            ["instance_id"],
            registry=self._registry,
        )

        self.lease_renewed = Counter(
            METRIC_LEASE_RENEWED,
            "Total number of successful lease renewals",
            ["instance_id"],
            registry=self._registry,
        )

        self.lease_lost = Counter(
            METRIC_LEASE_LOST,
            "Total number of leases lost on renewal",
            ["instance_id"],
            registry=self._registry,
        )

        self.lease_released = Counter(
            METRIC_LEASE_RELEASED,
            "Total number of leases released",
            ["instance_id"],
            registry=self._registry,
        )

        self.keepalive_errors = Counter(
            METRIC_KEEPALIVE_ERRORS,
            "Total number of keep-alive ticks that raised",
            ["instance_id"],
            registry=self._registry,
        )

        # 1 while a lease is held, 0 otherwise
        self.lease_held = Gauge(
            METRIC_LEASE_HELD,
            "Whether this instance currently holds a lease",
            ["instance_id"],
            registry=self._registry,
        )

    def record_lease_acquired(self, instance_id: str) -> None:
        """Record a lease acquisition."""
        self.lease_acquired.labels(instance_id=instance_id).inc()
        self.lease_held.labels(instance_id=instance_id).set(1)

    def record_lease_unavailable(self, instance_id: str) -> None:
        """Record an acquisition attempt that found no free lease."""
        self.lease_unavailable.labels(instance_id=instance_id).inc()

    def record_lease_renewed(self, instance_id: str) -> None:
        """Record a successful renewal."""
        self.lease_renewed.labels(instance_id=instance_id).inc()

    def record_lease_lost(self, instance_id: str) -> None:
        """Record a lease lost on renewal."""
        self.lease_lost.labels(instance_id=instance_id).inc()
        self.lease_held.labels(instance_id=instance_id).set(0)

    def record_lease_released(self, instance_id: str) -> None:
        """Record a lease release."""
        self.lease_released.labels(instance_id=instance_id).inc()
        self.lease_held.labels(instance_id=instance_id).set(0)

    def record_keepalive_error(self, instance_id: str) -> None:
        """Record a keep-alive tick that raised."""
        self.keepalive_errors.labels(instance_id=instance_id).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)


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
