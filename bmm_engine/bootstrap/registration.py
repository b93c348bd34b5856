"""Bootstrap wiring for the registration engine services.

Repositories are in-memory stubs (persistence is outside this service).
The notifier is the HTTP gateway adapter when BMM_NOTIFIER_GATEWAY_URL is
set, otherwise the in-memory stub. The gateway adapter holds one pooled
HTTP client for the life of the process; close_registration_dependencies()
releases it when the app shuts down.
"""

from __future__ import annotations

from typing import Literal

from structlog import get_logger

from bmm_engine.application.ports.campaign_job_repository import (
    CampaignJobRepositoryProtocol,
)
from bmm_engine.application.ports.notifier import NotifierProtocol
from bmm_engine.application.ports.registration_repository import (
    RegistrationRepositoryProtocol,
)
from bmm_engine.application.ports.ticket_ledger_repository import (
    TicketLedgerRepositoryProtocol,
)
from bmm_engine.application.ports.ticket_renderer import TicketRendererProtocol
from bmm_engine.application.ports.time_authority import TimeAuthorityProtocol
from bmm_engine.application.services import (
    CampaignDispatcherService,
    LockRegistry,
    RegistrationReportService,
    SegmentService,
    StageMachineService,
    TicketLedgerService,
)
from bmm_engine.bootstrap.metrics import get_metrics_collector
from bmm_engine.config.engine_config import EngineConfig, NotifierGatewayConfig
from bmm_engine.infrastructure.adapters import HttpNotifierAdapter, SystemTimeAuthority
from bmm_engine.infrastructure.stubs import (
    CampaignJobRepositoryStub,
    NotifierStub,
    RegistrationRepositoryStub,
    TicketLedgerRepositoryStub,
    TicketRendererStub,
)

logger = get_logger()

_engine_config: EngineConfig | None = None
_registration_repository: RegistrationRepositoryProtocol | None = None
_ticket_ledger_repository: TicketLedgerRepositoryProtocol | None = None
_campaign_job_repository: CampaignJobRepositoryProtocol | None = None
_notifier: NotifierProtocol | None = None
_ticket_renderer: TicketRendererProtocol | None = None
_time_authority: TimeAuthorityProtocol | None = None
_member_locks: LockRegistry | None = None
_campaign_locks: LockRegistry | None = None
_stage_machine_service: StageMachineService | None = None
_segment_service: SegmentService | None = None
_campaign_dispatcher_service: CampaignDispatcherService | None = None
_report_service: RegistrationReportService | None = None


def get_engine_config() -> EngineConfig:
    """Get engine configuration loaded from the environment."""
    global _engine_config
    if _engine_config is None:
        _engine_config = EngineConfig.from_environment()
    return _engine_config


def get_registration_repository() -> RegistrationRepositoryProtocol:
    """Get registration repository instance."""
    global _registration_repository
    if _registration_repository is None:
        _registration_repository = RegistrationRepositoryStub()
    return _registration_repository


def get_ticket_ledger_repository() -> TicketLedgerRepositoryProtocol:
    """Get ticket ledger repository instance."""
    global _ticket_ledger_repository
    if _ticket_ledger_repository is None:
        _ticket_ledger_repository = TicketLedgerRepositoryStub()
    return _ticket_ledger_repository


def get_campaign_job_repository() -> CampaignJobRepositoryProtocol:
    """Get campaign job repository instance."""
    global _campaign_job_repository
    if _campaign_job_repository is None:
        _campaign_job_repository = CampaignJobRepositoryStub()
    return _campaign_job_repository


def get_notifier() -> NotifierProtocol:
    """Get notifier instance.

    Returns the HTTP gateway adapter if BMM_NOTIFIER_GATEWAY_URL is
    configured, otherwise the in-memory stub.
    """
    global _notifier
    if _notifier is None:
        gateway = NotifierGatewayConfig.from_environment()
        if gateway.enabled:
            _notifier = HttpNotifierAdapter(
                gateway,
                timeout_seconds=get_engine_config().notifier_timeout_seconds,
            )
            logger.info("notifier_initialized", notifier_type="HttpGateway")
        else:
            logger.warning(
                "notifier_initialized",
                notifier_type="InMemoryStub",
                message="BMM_NOTIFIER_GATEWAY_URL not set - messages are not delivered",
            )
            _notifier = NotifierStub()
    return _notifier


def notifier_mode() -> Literal["gateway", "in_memory"]:
    """Report whether campaigns reach a provider or stay in memory."""
    return "in_memory" if isinstance(get_notifier(), NotifierStub) else "gateway"


def get_ticket_renderer() -> TicketRendererProtocol:
    """Get ticket renderer instance."""
    global _ticket_renderer
    if _ticket_renderer is None:
        _ticket_renderer = TicketRendererStub(base_url=get_engine_config().public_base_url)
    return _ticket_renderer


def get_time_authority() -> TimeAuthorityProtocol:
    """Get time authority instance."""
    global _time_authority
    if _time_authority is None:
        _time_authority = SystemTimeAuthority()
    return _time_authority


def get_member_locks() -> LockRegistry:
    """Get the process-wide per-member lock registry."""
    global _member_locks
    if _member_locks is None:
        _member_locks = LockRegistry()
    return _member_locks


def get_campaign_locks() -> LockRegistry:
    """Get the process-wide per-campaign dispatch lock registry."""
    global _campaign_locks
    if _campaign_locks is None:
        _campaign_locks = LockRegistry()
    return _campaign_locks


def get_stage_machine_service() -> StageMachineService:
    """Get stage machine service instance."""
    global _stage_machine_service
    if _stage_machine_service is None:
        _stage_machine_service = StageMachineService(
            registrations=get_registration_repository(),
            ledger=TicketLedgerService(get_ticket_ledger_repository()),
            time_authority=get_time_authority(),
            locks=get_member_locks(),
            auto_approve_special_votes=get_engine_config().auto_approve_special_votes,
            metrics=get_metrics_collector(),
        )
    return _stage_machine_service


def get_segment_service() -> SegmentService:
    """Get segment service instance."""
    global _segment_service
    if _segment_service is None:
        _segment_service = SegmentService(get_registration_repository())
    return _segment_service


def get_campaign_dispatcher_service() -> CampaignDispatcherService:
    """Get campaign dispatcher service instance."""
    global _campaign_dispatcher_service
    if _campaign_dispatcher_service is None:
        config = get_engine_config()
        _campaign_dispatcher_service = CampaignDispatcherService(
            segments=get_segment_service(),
            jobs=get_campaign_job_repository(),
            notifier=get_notifier(),
            ticket_renderer=get_ticket_renderer(),
            ledger=TicketLedgerService(get_ticket_ledger_repository()),
            time_authority=get_time_authority(),
            public_base_url=config.public_base_url,
            concurrency=config.dispatch_concurrency,
            timeout_seconds=config.notifier_timeout_seconds,
            max_attempts=config.dispatch_max_attempts,
            backoff_seconds=config.dispatch_backoff_seconds,
            metrics=get_metrics_collector(),
            campaign_locks=get_campaign_locks(),
        )
    return _campaign_dispatcher_service


def get_report_service() -> RegistrationReportService:
    """Get registration report service instance."""
    global _report_service
    if _report_service is None:
        _report_service = RegistrationReportService(
            registrations=get_registration_repository(),
            ledger=TicketLedgerService(get_ticket_ledger_repository()),
        )
    return _report_service


def set_notifier(notifier: NotifierProtocol) -> None:
    """Set custom notifier (testing/override)."""
    global _notifier, _campaign_dispatcher_service
    _notifier = notifier
    _campaign_dispatcher_service = None


def set_time_authority(time_authority: TimeAuthorityProtocol) -> None:
    """Set custom time authority (testing/override)."""
    global _time_authority, _stage_machine_service, _campaign_dispatcher_service
    _time_authority = time_authority
    _stage_machine_service = None
    _campaign_dispatcher_service = None


def reset_registration_dependencies() -> None:
    """Reset every singleton (testing cleanup)."""
    global _engine_config, _registration_repository, _ticket_ledger_repository
    global _campaign_job_repository, _notifier, _ticket_renderer, _time_authority
    global _member_locks, _campaign_locks, _stage_machine_service, _segment_service
    global _campaign_dispatcher_service, _report_service
    _engine_config = None
    _registration_repository = None
    _ticket_ledger_repository = None
    _campaign_job_repository = None
    _notifier = None
    _ticket_renderer = None
    _time_authority = None
    _member_locks = None
    _campaign_locks = None
    _stage_machine_service = None
    _segment_service = None
    _campaign_dispatcher_service = None
    _report_service = None


async def close_registration_dependencies() -> None:
    """Release the notifier's HTTP client and drop every singleton."""
    if isinstance(_notifier, HttpNotifierAdapter):
        await _notifier.close()
        logger.info("notifier_closed", notifier_type="HttpGateway")
    reset_registration_dependencies()
