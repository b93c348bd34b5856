"""Administrative registration API routes.

Every route requires the X-Operator-Id header; the operator is recorded
on assignments, tickets, check-ins, special vote decisions and the
override audit trail.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from bmm_engine.api.auth.operator_auth import get_operator_id
from bmm_engine.api.dependencies.registration import (
    get_report_service,
    get_stage_machine_service,
)
from bmm_engine.api.errors import problem_exception
from bmm_engine.api.models.admin import (
    AssignVenueRequest,
    BulkCheckInItem,
    BulkCheckInRequest,
    BulkCheckInResponse,
    CheckInRequest,
    CheckInResponse,
    OverrideStageRequest,
    RegistrationSummaryResponse,
    SpecialVoteDecisionRequest,
    SpecialVoteEligibilityRequest,
    TicketCheckInRequest,
    TicketIssueResponse,
)
from bmm_engine.api.models.common import CheckInMethodEnum, ProblemDetail
from bmm_engine.api.models.registration import RegistrationResponse
from bmm_engine.api.routes.self_service import registration_response
from bmm_engine.application.services import (
    RegistrationReportService,
    StageMachineService,
)
from bmm_engine.domain.exceptions import RegistrationEngineError
from bmm_engine.domain.models.registration import RegistrationStage
from bmm_engine.domain.models.ticket import CheckInMethod, CheckInOutcome, CheckInStatus

router = APIRouter(prefix="/v1/admin", tags=["admin"])

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    401: {"model": ProblemDetail, "description": "Operator identity missing"},
    404: {"model": ProblemDetail, "description": "Member or ticket not found"},
    409: {"model": ProblemDetail, "description": "Operation not valid for the record"},
    422: {"model": ProblemDetail, "description": "Invalid request"},
}


def _check_in_response(outcome: CheckInOutcome) -> CheckInResponse:
    record = outcome.record
    return CheckInResponse(
        member_id=record.member_id,
        ticket_reference=record.ticket_reference,
        checked_in_at=record.checked_in_at,
        method=CheckInMethodEnum(record.method.value),
        operator_id=record.operator_id,
        venue=record.venue,
        status=outcome.status.value,
    )


@router.post(
    "/members/{member_id}/venue",
    response_model=RegistrationResponse,
    responses=_ERROR_RESPONSES,
    summary="Assign venue and session",
)
async def assign_venue(
    member_id: UUID,
    request_data: AssignVenueRequest,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: StageMachineService = Depends(get_stage_machine_service),
) -> RegistrationResponse:
    """Record the allocation process's venue and session for a member."""
    try:
        record = await service.assign_venue(
            member_id,
            venue=request_data.venue,
            session_at=request_data.session_at,
            operator_id=operator_id,
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return registration_response(record)


@router.post(
    "/members/{member_id}/ticket",
    response_model=TicketIssueResponse,
    responses=_ERROR_RESPONSES,
    summary="Issue a ticket",
    description="Idempotent: a second call returns the existing ticket with ALREADY_ISSUED.",
)
async def issue_ticket(
    member_id: UUID,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: StageMachineService = Depends(get_stage_machine_service),
) -> TicketIssueResponse:
    """Issue (or return) the member's ticket."""
    try:
        outcome = await service.issue_ticket(member_id, operator_id=operator_id)
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return TicketIssueResponse(
        member_id=outcome.ticket.member_id,
        ticket_reference=outcome.ticket.reference,
        issued_at=outcome.ticket.issued_at,
        status=outcome.status.value,
    )


@router.post(
    "/members/{member_id}/check-in",
    response_model=CheckInResponse,
    responses=_ERROR_RESPONSES,
    summary="Check a member in",
    description=(
        "Idempotent: a repeat returns the original check-in with ALREADY_CHECKED_IN "
        "and the attempt is logged as a duplicate."
    ),
)
async def check_in_member(
    member_id: UUID,
    request_data: CheckInRequest,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: StageMachineService = Depends(get_stage_machine_service),
) -> CheckInResponse:
    """Check a member in by id."""
    try:
        outcome = await service.check_in(
            member_id,
            method=CheckInMethod(request_data.method.value),
            operator_id=operator_id,
            venue=request_data.venue,
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return _check_in_response(outcome)


@router.post(
    "/tickets/{reference}/check-in",
    response_model=CheckInResponse,
    responses=_ERROR_RESPONSES,
    summary="Check in by scanned ticket",
)
async def check_in_ticket(
    reference: str,
    request_data: TicketCheckInRequest,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: StageMachineService = Depends(get_stage_machine_service),
) -> CheckInResponse:
    """Check the ticket holder in from a QR scan."""
    try:
        outcome = await service.check_in_by_ticket(
            reference, operator_id=operator_id, venue=request_data.venue
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return _check_in_response(outcome)


@router.post(
    "/check-in/bulk",
    response_model=BulkCheckInResponse,
    responses=_ERROR_RESPONSES,
    summary="Check in a batch of members",
    description="Each member is processed independently; failures are reported per member.",
)
async def bulk_check_in(
    request_data: BulkCheckInRequest,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: StageMachineService = Depends(get_stage_machine_service),
) -> BulkCheckInResponse:
    """Check in several members at once."""
    try:
        results = await service.bulk_check_in(
            request_data.member_ids, operator_id=operator_id, venue=request_data.venue
        )
    except ValueError as e:
        raise problem_exception(e, request) from None

    items = [
        BulkCheckInItem(
            member_id=result.member_id,
            status=result.outcome.status.value if result.outcome else None,
            error=result.error,
        )
        for result in results
    ]
    statuses = [r.outcome.status for r in results if r.outcome is not None]
    return BulkCheckInResponse(
        results=items,
        checked_in=statuses.count(CheckInStatus.CHECKED_IN),
        already_checked_in=statuses.count(CheckInStatus.ALREADY_CHECKED_IN),
        failed=sum(1 for r in results if r.error is not None),
    )


@router.post(
    "/members/{member_id}/override",
    response_model=RegistrationResponse,
    responses=_ERROR_RESPONSES,
    summary="Force a registration stage",
    description=(
        "Privileged correction, recorded in the audit trail. Data belonging to "
        "later stages is cleared; a ticket or check-in is voided in the ledger."
    ),
)
async def override_stage(
    member_id: UUID,
    request_data: OverrideStageRequest,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: StageMachineService = Depends(get_stage_machine_service),
) -> RegistrationResponse:
    """Force a member's registration into a stage."""
    try:
        record = await service.override_stage(
            member_id,
            target_stage=RegistrationStage(request_data.target_stage.value),
            operator_id=operator_id,
            justification=request_data.justification,
            absence_reason=request_data.absence_reason,
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return registration_response(record)


@router.post(
    "/members/{member_id}/special-vote/decision",
    response_model=RegistrationResponse,
    responses=_ERROR_RESPONSES,
    summary="Approve or decline a special vote request",
)
async def decide_special_vote(
    member_id: UUID,
    request_data: SpecialVoteDecisionRequest,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: StageMachineService = Depends(get_stage_machine_service),
) -> RegistrationResponse:
    """Record the review decision on a pending request."""
    try:
        record = await service.decide_special_vote(
            member_id,
            approved=request_data.approved,
            operator_id=operator_id,
            notes=request_data.notes,
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return registration_response(record)


@router.post(
    "/members/{member_id}/special-vote/eligibility",
    response_model=RegistrationResponse,
    responses=_ERROR_RESPONSES,
    summary="Grant or revoke special vote eligibility",
    description="Administrative authority beyond the automatic rules; audited.",
)
async def set_special_vote_eligibility(
    member_id: UUID,
    request_data: SpecialVoteEligibilityRequest,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: StageMachineService = Depends(get_stage_machine_service),
) -> RegistrationResponse:
    """Override a non-attending member's special vote eligibility."""
    try:
        record = await service.set_special_vote_eligibility(
            member_id,
            eligible=request_data.eligible,
            operator_id=operator_id,
            justification=request_data.justification,
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return registration_response(record)


@router.get(
    "/reports/summary",
    response_model=RegistrationSummaryResponse,
    responses={401: _ERROR_RESPONSES[401]},
    summary="Registration summary",
)
async def registration_summary(
    event_id: UUID | None = Query(default=None),
    operator_id: str = Depends(get_operator_id),
    service: RegistrationReportService = Depends(get_report_service),
) -> RegistrationSummaryResponse:
    """Aggregate counts for one event, or every event when event_id is omitted."""
    summary = await service.summarize(event_id)
    return RegistrationSummaryResponse(
        total=summary.total,
        registered=summary.registered,
        by_stage=summary.by_stage,
        by_region=summary.by_region,
        attending=summary.attending,
        not_attending=summary.not_attending,
        undecided=summary.undecided,
        special_vote_eligible=summary.special_vote_eligible,
        special_vote_requested=summary.special_vote_requested,
        special_vote_by_status=summary.special_vote_by_status,
        tickets_issued=summary.tickets_issued,
        checked_in=summary.checked_in,
        check_ins_by_venue=summary.check_ins_by_venue,
        duplicate_check_in_attempts=summary.duplicate_check_in_attempts,
    )
