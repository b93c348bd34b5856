"""FastAPI dependency getters."""

from bmm_engine.api.dependencies.registration import (
    get_campaign_dispatcher_service,
    get_report_service,
    get_segment_service,
    get_stage_machine_service,
)

__all__ = [
    "get_campaign_dispatcher_service",
    "get_report_service",
    "get_segment_service",
    "get_stage_machine_service",
]
