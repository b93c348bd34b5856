"""Monitoring infrastructure (Prometheus counters)."""

from bmm_engine.infrastructure.monitoring.metrics import (
    METRICS_CONTENT_TYPE,
    EngineMetrics,
    get_engine_metrics,
    reset_engine_metrics,
)

__all__: list[str] = [
    "EngineMetrics",
    "METRICS_CONTENT_TYPE",
    "get_engine_metrics",
    "reset_engine_metrics",
]
