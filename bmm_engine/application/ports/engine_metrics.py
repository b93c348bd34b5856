"""Engine metrics port.

Services report stage transitions and campaign job outcomes through this
port. The Prometheus implementation lives in infrastructure/monitoring.
"""

from __future__ import annotations

from typing import Protocol


class EngineMetricsProtocol(Protocol):
    """Protocol for operational counters emitted by the engine."""

    def record_transition(self, operation: str, outcome: str) -> None:
        """Count one stage machine operation.

        Args:
            operation: Operation name (e.g. "issue_ticket").
            outcome: "ok", "noop" or the error class name.
        """
        ...

    def record_job(self, status: str, channel: str) -> None:
        """Count one resolved campaign job."""
        ...
