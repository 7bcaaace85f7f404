"""Self-monitoring metrics for the poller, exposed with prometheus_client."""
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class SelfMetrics:
    """Counters and gauges describing the poll loop itself."""

    def __init__(self, registry=None, prefix="metricview_"):
        if registry is None:
            # Custom registry keeps default Python/process metrics out
            registry = CollectorRegistry()
        self.registry = registry

        self.polls_total = Counter(
            f"{prefix}polls_total",
            "Total number of polls of the upstream metrics endpoint",
            ["outcome"],
            registry=registry
        )

        self.fetch_errors_total = Counter(
            f"{prefix}fetch_errors_total",
            "Total number of polls that ended in a fetch error",
            registry=registry
        )

        self.payload_format_total = Counter(
            f"{prefix}payload_format_total",
            "Decoded payloads by format",
            ["source"],
            registry=registry
        )

        self.metrics_decoded = Gauge(
            f"{prefix}metrics_decoded",
            "Number of canonical metrics in the last snapshot",
            registry=registry
        )

        self.poll_duration_seconds = Histogram(
            f"{prefix}poll_duration_seconds",
            "Duration of each poll in seconds",
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=registry
        )

    def record_success(self, source: str, metric_count: int, duration: float):
        """Record a successful poll."""
        self.polls_total.labels(outcome="success").inc()
        self.payload_format_total.labels(source=source or "unknown").inc()
        self.metrics_decoded.set(metric_count)
        self.poll_duration_seconds.observe(duration)

    def record_error(self, duration: float):
        """Record a failed poll."""
        self.polls_total.labels(outcome="error").inc()
        self.fetch_errors_total.inc()
        self.poll_duration_seconds.observe(duration)

    def render(self) -> bytes:
        """Current self-metrics in text exposition format."""
        return generate_latest(self.registry)
