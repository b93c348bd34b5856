"""Request logging middleware.

Every request runs inside a correlation scope: the caller's
X-Correlation-ID is reused when present, otherwise one is generated, and
it is echoed on the response. Self-service paths carry the member's access
token, so only a masked path is ever logged.
"""

import time
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bmm_engine.application.observability.correlation import correlation_scope

CORRELATION_HEADER = "X-Correlation-ID"

_TOKEN_PATH_PREFIX = "/v1/registrations/"


def loggable_path(path: str) -> str:
    """Mask the access token segment of self-service paths."""
    if not path.startswith(_TOKEN_PATH_PREFIX):
        return path
    remainder = path[len(_TOKEN_PATH_PREFIX) :]
    _, _, tail = remainder.partition("/")
    return f"{_TOKEN_PATH_PREFIX}***" + (f"/{tail}" if tail else "")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs request start, completion and failure under a correlation id."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_HEADER)) as correlation_id:
            log = structlog.get_logger().bind(
                correlation_id=correlation_id,
                method=request.method,
                path=loggable_path(request.url.path),
                operator=request.headers.get("X-Operator-Id"),
            )
            log.info("request_started")

            started = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as exc:
                log.exception(
                    "request_failed",
                    duration_ms=_elapsed_ms(started),
                    error_type=type(exc).__name__,
                )
                raise

            log.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=_elapsed_ms(started),
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
