"""Structured logging shared by the engine services.

Services call _init_logger once in __init__ and open an operation logger
per call:

    log = self._log_operation("issue_ticket", member_id=str(member_id))
    log.info("ticket_issued", reference=ticket.reference)

Access tokens are credentials; pass token_prefix(token), never the token.
"""

import structlog

from bmm_engine.application.observability.correlation import get_correlation_id

_TOKEN_PREFIX_LENGTH = 6


def token_prefix(token: str) -> str:
    """Shorten an access token for logging."""
    if len(token) <= _TOKEN_PREFIX_LENGTH:
        return "***"
    return f"{token[:_TOKEN_PREFIX_LENGTH]}..."


class LoggingMixin:
    """Binds service and component names onto a structlog logger.

    Attributes:
        _log: Logger bound with service (class name) and component.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "registration") -> None:
        self._log = structlog.get_logger().bind(
            service=type(self).__name__,
            component=component,
        )

    def _log_operation(self, operation: str, **context: object) -> structlog.BoundLogger:
        """Logger for one operation, carrying the request's correlation id.

        Context values that are None are left out so entries only show what
        the operation actually had.
        """
        bound = {key: value for key, value in context.items() if value is not None}
        correlation_id = get_correlation_id()
        if correlation_id:
            bound["correlation_id"] = correlation_id
        return self._log.bind(operation=operation, **bound)
