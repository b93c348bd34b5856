"""Health check endpoint."""

from fastapi import APIRouter

from bmm_engine import __version__
from bmm_engine.api.models.health import HealthResponse
from bmm_engine.bootstrap.registration import get_time_authority, notifier_mode

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        version=__version__,
        notifier=notifier_mode(),
        checked_at=get_time_authority().now(),
    )
