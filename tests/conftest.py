"""
Pytest configuration and shared fixtures for registration engine tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

from datetime import datetime, timezone
from uuid import UUID

import pytest

from bmm_engine.application.services import (
    CampaignDispatcherService,
    LockRegistry,
    RegistrationReportService,
    SegmentService,
    StageMachineService,
    TicketLedgerService,
)
from bmm_engine.infrastructure.monitoring.metrics import EngineMetrics
from bmm_engine.infrastructure.stubs import (
    CampaignJobRepositoryStub,
    NotifierStub,
    RegistrationRepositoryStub,
    TicketLedgerRepositoryStub,
    TicketRendererStub,
)
from tests.helpers.fake_time_authority import FakeTimeAuthority

EVENT_ID = UUID("00000000-0000-0000-0000-0000000000e1")


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from bmm_engine import __version__

    return __version__


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    """Time frozen at 2026-03-01 09:00 UTC."""
    return FakeTimeAuthority(frozen_at=datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def registrations() -> RegistrationRepositoryStub:
    return RegistrationRepositoryStub()


@pytest.fixture
def ledger_repository() -> TicketLedgerRepositoryStub:
    return TicketLedgerRepositoryStub()


@pytest.fixture
def ledger(ledger_repository: TicketLedgerRepositoryStub) -> TicketLedgerService:
    return TicketLedgerService(ledger_repository)


@pytest.fixture
def metrics() -> EngineMetrics:
    """Isolated metrics with their own registry."""
    return EngineMetrics()


@pytest.fixture
def stage_machine(
    registrations: RegistrationRepositoryStub,
    ledger: TicketLedgerService,
    fake_time_authority: FakeTimeAuthority,
    metrics: EngineMetrics,
) -> StageMachineService:
    return StageMachineService(
        registrations=registrations,
        ledger=ledger,
        time_authority=fake_time_authority,
        locks=LockRegistry(),
        metrics=metrics,
    )


@pytest.fixture
def segment_service(registrations: RegistrationRepositoryStub) -> SegmentService:
    return SegmentService(registrations)


@pytest.fixture
def jobs() -> CampaignJobRepositoryStub:
    return CampaignJobRepositoryStub()


@pytest.fixture
def notifier() -> NotifierStub:
    return NotifierStub()


@pytest.fixture
def ticket_renderer() -> TicketRendererStub:
    return TicketRendererStub(base_url="https://events.example.org")


@pytest.fixture
def dispatcher(
    segment_service: SegmentService,
    jobs: CampaignJobRepositoryStub,
    notifier: NotifierStub,
    ticket_renderer: TicketRendererStub,
    ledger: TicketLedgerService,
    fake_time_authority: FakeTimeAuthority,
    metrics: EngineMetrics,
) -> CampaignDispatcherService:
    """Dispatcher with no backoff so retry tests run instantly."""
    return CampaignDispatcherService(
        segments=segment_service,
        jobs=jobs,
        notifier=notifier,
        ticket_renderer=ticket_renderer,
        ledger=ledger,
        time_authority=fake_time_authority,
        public_base_url="https://events.example.org",
        concurrency=4,
        timeout_seconds=0.5,
        max_attempts=3,
        backoff_seconds=0.0,
        metrics=metrics,
    )


@pytest.fixture
def report_service(
    registrations: RegistrationRepositoryStub,
    ledger: TicketLedgerService,
) -> RegistrationReportService:
    return RegistrationReportService(registrations=registrations, ledger=ledger)
