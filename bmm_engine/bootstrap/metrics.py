"""Metrics wiring.

Services record into the process-wide EngineMetrics; the API only needs
the rendered exposition and its content type.
"""

from __future__ import annotations

from bmm_engine.application.ports.engine_metrics import EngineMetricsProtocol
from bmm_engine.infrastructure.monitoring.metrics import (
    METRICS_CONTENT_TYPE,
    get_engine_metrics,
    reset_engine_metrics,
)


def get_metrics_collector() -> EngineMetricsProtocol:
    return get_engine_metrics()


def render_metrics() -> tuple[bytes, str]:
    """Current counters in Prometheus text format, with the content type."""
    return get_engine_metrics().generate(), METRICS_CONTENT_TYPE


def reset_metrics() -> None:
    """Drop the metrics singleton (testing cleanup)."""
    reset_engine_metrics()
