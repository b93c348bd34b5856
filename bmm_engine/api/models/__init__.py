"""API request/response models (Pydantic v2)."""

from bmm_engine.api.models.health import HealthResponse

__all__ = ["HealthResponse"]
