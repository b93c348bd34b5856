"""Application services for the registration engine.

Services orchestrate domain logic against the ports. Each service logs
through LoggingMixin and takes its collaborators by constructor injection.
"""

from bmm_engine.application.services.campaign_dispatcher_service import (
    CampaignDispatcherService,
)
from bmm_engine.application.services.locks import LockRegistry
from bmm_engine.application.services.report_service import (
    RegistrationReportService,
    RegistrationSummary,
)
from bmm_engine.application.services.segment_service import SegmentPreview, SegmentService
from bmm_engine.application.services.stage_machine_service import (
    BulkCheckInResult,
    StageMachineService,
)
from bmm_engine.application.services.ticket_ledger_service import TicketLedgerService

__all__ = [
    "BulkCheckInResult",
    "CampaignDispatcherService",
    "LockRegistry",
    "RegistrationReportService",
    "RegistrationSummary",
    "SegmentPreview",
    "SegmentService",
    "StageMachineService",
    "TicketLedgerService",
]
