"""In-memory stub adapters for development and testing.

These stubs implement the application ports without external systems.
They are NOT suitable for production persistence.
"""

from bmm_engine.infrastructure.stubs.campaign_job_repository_stub import (
    CampaignJobRepositoryStub,
)
from bmm_engine.infrastructure.stubs.notifier_stub import NotifierStub, SentMessage
from bmm_engine.infrastructure.stubs.registration_repository_stub import (
    RegistrationRepositoryStub,
)
from bmm_engine.infrastructure.stubs.ticket_ledger_repository_stub import (
    TicketLedgerRepositoryStub,
)
from bmm_engine.infrastructure.stubs.ticket_renderer_stub import TicketRendererStub

__all__: list[str] = [
    "CampaignJobRepositoryStub",
    "NotifierStub",
    "RegistrationRepositoryStub",
    "SentMessage",
    "TicketLedgerRepositoryStub",
    "TicketRendererStub",
]
