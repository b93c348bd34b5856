"""API routers."""

from bmm_engine.api.routes.admin import router as admin_router
from bmm_engine.api.routes.campaigns import router as campaigns_router
from bmm_engine.api.routes.health import router as health_router
from bmm_engine.api.routes.metrics import router as metrics_router
from bmm_engine.api.routes.self_service import router as self_service_router

__all__ = [
    "admin_router",
    "campaigns_router",
    "health_router",
    "metrics_router",
    "self_service_router",
]
