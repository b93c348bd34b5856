"""Logging wiring for the API process."""

from __future__ import annotations

import os

from bmm_engine.infrastructure.observability import configure_structlog


def configure_logging(environment: str | None = None) -> str:
    """Configure structlog for ENVIRONMENT (development when unset).

    Returns the environment that was applied.
    """
    environment = environment or os.environ.get("ENVIRONMENT", "development")
    configure_structlog(environment=environment)
    return environment
