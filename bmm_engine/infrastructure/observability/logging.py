"""structlog setup for the engine.

Production renders one JSON object per line:

    {"event": "ticket_issued", "level": "info", "timestamp": "...",
     "correlation_id": "...", "service": "StageMachineService",
     "component": "ticketing", "operation": "issue_ticket", ...}

Any other environment gets the coloured console renderer. LOG_LEVEL picks
the threshold (INFO when unset or unknown).

Access tokens are credentials. Services already log token_prefix(token);
redact_secrets_processor catches a full value that reaches a secret key
anyway.
"""

import logging
import os
from typing import Any, cast

import structlog
from structlog.typing import Processor

from bmm_engine.application.observability.correlation import correlation_id_processor

SECRET_KEYS: frozenset[str] = frozenset({"access_token", "api_key", "authorization"})
_VISIBLE_SECRET_CHARS = 6


def redact_secrets_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and len(value) > _VISIBLE_SECRET_CHARS:
            event_dict[key] = value[:_VISIBLE_SECRET_CHARS] + "..."
    return event_dict


def _threshold() -> int:
    name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _renderers(environment: str) -> list[Processor]:
    if environment == "production":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def configure_structlog(environment: str = "production") -> None:
    """Install the engine's processor chain. Call once at startup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            cast(Processor, correlation_id_processor),
            cast(Processor, redact_secrets_processor),
            *_renderers(environment),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_threshold()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
