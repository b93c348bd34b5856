"""Prometheus metrics for the registration engine.

Operational counters only:
- bmm_stage_transitions_total{service, environment, operation, outcome}
- bmm_campaign_jobs_total{service, environment, status, channel}

Each EngineMetrics owns its own CollectorRegistry so tests can create
isolated instances; the API uses the process singleton.
"""

import os
import threading

from prometheus_client import CollectorRegistry, Counter, generate_latest

# Content type for Prometheus metrics endpoint
METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

_collector_lock = threading.Lock()


class EngineMetrics:
    """Collects engine counters. Implements EngineMetricsProtocol.

    Attributes:
        stage_transitions_total: Counter of stage machine operations by outcome.
        campaign_jobs_total: Counter of resolved campaign jobs by status and channel.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize the counters.

        Args:
            registry: Optional custom registry for testing isolation.
        """
        self._registry = registry or CollectorRegistry()
        self._environment = os.environ.get("ENVIRONMENT", "development")
        self._service_name = os.environ.get("SERVICE_NAME", "bmm-engine")

        self.stage_transitions_total = Counter(
            name="bmm_stage_transitions_total",
            documentation="Stage machine operations by outcome",
            labelnames=["service", "environment", "operation", "outcome"],
            registry=self._registry,
        )

        self.campaign_jobs_total = Counter(
            name="bmm_campaign_jobs_total",
            documentation="Resolved campaign delivery jobs",
            labelnames=["service", "environment", "status", "channel"],
            registry=self._registry,
        )

    def record_transition(self, operation: str, outcome: str) -> None:
        """Count one stage machine operation.

        Args:
            operation: Operation name.
            outcome: "ok", "noop" or the error class name.
        """
        self.stage_transitions_total.labels(
            service=self._service_name,
            environment=self._environment,
            operation=operation,
            outcome=outcome,
        ).inc()

    def record_job(self, status: str, channel: str) -> None:
        """Count one resolved campaign job."""
        self.campaign_jobs_total.labels(
            service=self._service_name,
            environment=self._environment,
            status=status,
            channel=channel,
        ).inc()

    def get_registry(self) -> CollectorRegistry:
        """Get the collector registry."""
        return self._registry

    def generate(self) -> bytes:
        """Render the counters in Prometheus exposition format."""
        return generate_latest(self._registry)


_engine_metrics: EngineMetrics | None = None


def get_engine_metrics() -> EngineMetrics:
    """Get the singleton EngineMetrics instance (thread-safe).

    Uses double-checked locking for lazy initialization.
    """
    global _engine_metrics
    if _engine_metrics is None:
        with _collector_lock:
            if _engine_metrics is None:
                _engine_metrics = EngineMetrics()
    return _engine_metrics


def reset_engine_metrics() -> None:
    """Reset the singleton (for testing only)."""
    global _engine_metrics
    with _collector_lock:
        _engine_metrics = None
