"""Registration engine API dependencies.

FastAPI dependency getters. Wiring lives in the bootstrap composition
root; these functions only delegate so routes can be overridden with
app.dependency_overrides in tests.
"""

from bmm_engine.application.services import (
    CampaignDispatcherService,
    RegistrationReportService,
    SegmentService,
    StageMachineService,
)
from bmm_engine.bootstrap.registration import (
    get_campaign_dispatcher_service as _get_campaign_dispatcher_service,
    get_report_service as _get_report_service,
    get_segment_service as _get_segment_service,
    get_stage_machine_service as _get_stage_machine_service,
)


def get_stage_machine_service() -> StageMachineService:
    """Get stage machine service instance."""
    return _get_stage_machine_service()


def get_segment_service() -> SegmentService:
    """Get segment service instance."""
    return _get_segment_service()


def get_campaign_dispatcher_service() -> CampaignDispatcherService:
    """Get campaign dispatcher service instance."""
    return _get_campaign_dispatcher_service()


def get_report_service() -> RegistrationReportService:
    """Get registration report service instance."""
    return _get_report_service()
