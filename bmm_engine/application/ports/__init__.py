"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.

Available ports:
- RegistrationRepositoryProtocol: Registration records and override audit
- TicketLedgerRepositoryProtocol: Tickets, check-ins and deliveries
- CampaignJobRepositoryProtocol: Campaigns and per-recipient jobs
- NotifierProtocol: Outbound email/SMS delivery
- TicketRendererProtocol: Ticket URL rendering
- TimeAuthorityProtocol: Timestamp provisioning
- EngineMetricsProtocol: Operational counters
"""

from bmm_engine.application.ports.campaign_job_repository import (
    CampaignJobRepositoryProtocol,
)
from bmm_engine.application.ports.engine_metrics import EngineMetricsProtocol
from bmm_engine.application.ports.notifier import NotifierProtocol
from bmm_engine.application.ports.registration_repository import (
    RegistrationRepositoryProtocol,
)
from bmm_engine.application.ports.ticket_ledger_repository import (
    TicketLedgerRepositoryProtocol,
)
from bmm_engine.application.ports.ticket_renderer import TicketRendererProtocol
from bmm_engine.application.ports.time_authority import TimeAuthorityProtocol

__all__: list[str] = [
    "CampaignJobRepositoryProtocol",
    "EngineMetricsProtocol",
    "NotifierProtocol",
    "RegistrationRepositoryProtocol",
    "TicketLedgerRepositoryProtocol",
    "TicketRendererProtocol",
    "TimeAuthorityProtocol",
]
