"""FastAPI application entry point for the BMM registration engine."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bmm_engine import __version__
from bmm_engine.api.middleware.logging_middleware import LoggingMiddleware
from bmm_engine.api.routes import (
    admin_router,
    campaigns_router,
    health_router,
    metrics_router,
    self_service_router,
)
from bmm_engine.bootstrap.logging import configure_logging
from bmm_engine.bootstrap.registration import close_registration_dependencies


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    # Shutdown: the gateway notifier's pooled client must be closed.
    await close_registration_dependencies()


def create_app() -> FastAPI:
    """Build the application with every router and the logging middleware."""
    configure_logging()

    application = FastAPI(
        title="BMM Registration Engine API",
        description="Member event registration, ticketing and campaign dispatch",
        version=__version__,
        lifespan=lifespan,
    )
    application.add_middleware(LoggingMiddleware)
    application.include_router(health_router)
    application.include_router(metrics_router)
    application.include_router(self_service_router)
    application.include_router(admin_router)
    application.include_router(campaigns_router)
    return application


app = create_app()
