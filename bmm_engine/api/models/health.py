"""Health check response models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Liveness report for load balancers and operators.

    notifier is "gateway" when campaigns reach a real provider and
    "in_memory" when messages are only recorded locally.
    """

    status: Literal["healthy"] = "healthy"
    version: str
    notifier: Literal["gateway", "in_memory"]
    checked_at: datetime
