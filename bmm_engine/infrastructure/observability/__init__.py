"""Observability infrastructure for structured logging.

Usage:
    from bmm_engine.infrastructure.observability import configure_structlog

    # At startup
    configure_structlog(environment="production")
"""

from bmm_engine.infrastructure.observability.logging import (
    configure_structlog,
    redact_secrets_processor,
)

__all__: list[str] = [
    "configure_structlog",
    "redact_secrets_processor",
]
