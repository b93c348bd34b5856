"""Member self-service API routes.

Members reach their registration through the opaque access token in the
link they were sent. An unknown token is a 404 with the same message as
every other unknown-member lookup.
"""

from fastapi import APIRouter, Depends, Request

from bmm_engine.api.dependencies.registration import get_stage_machine_service
from bmm_engine.api.errors import problem_exception
from bmm_engine.api.models.common import ProblemDetail, StageEnum
from bmm_engine.api.models.registration import (
    AssignmentModel,
    ConfirmAttendanceRequest,
    PreferenceModel,
    RegistrationResponse,
    SpecialVoteApplicationRequest,
    SubmitPreferenceRequest,
)
from bmm_engine.application.services import StageMachineService
from bmm_engine.domain.exceptions import RegistrationEngineError
from bmm_engine.domain.models.registration import MemberRegistration

router = APIRouter(prefix="/v1/registrations", tags=["self-service"])

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    404: {"model": ProblemDetail, "description": "Registration not found"},
    409: {"model": ProblemDetail, "description": "Operation not valid from the current stage"},
    422: {"model": ProblemDetail, "description": "Invalid or incomplete request"},
}


def registration_response(record: MemberRegistration) -> RegistrationResponse:
    """Build the member-facing view of a registration."""
    preference = record.preference
    assignment = record.assignment
    return RegistrationResponse(
        member_id=record.id,
        event_id=record.event_id,
        membership_number=record.membership_number,
        name=record.name,
        region=record.region.label,
        stage=StageEnum(record.stage.value),
        preference=(
            PreferenceModel(
                attendance_intent=preference.attendance_intent,
                venues=list(preference.venues),
                times=list(preference.times),
                comments=preference.comments,
                submitted_at=preference.submitted_at,
            )
            if preference
            else None
        ),
        assignment=(
            AssignmentModel(venue=assignment.venue, session_at=assignment.session_at)
            if assignment
            else None
        ),
        attendance=record.attendance.value,
        absence_reason=record.absence_reason,
        special_vote_eligible=record.special_vote_eligible,
        special_vote_rationale=record.special_vote_rationale,
        special_vote_requested=record.special_vote_requested,
        special_vote_status=record.special_vote_status.value,
        ticket_reference=record.ticket_reference,
        ticket_issued_at=record.ticket_issued_at,
        checked_in_at=record.checked_in_at,
        version=record.version,
    )


@router.get(
    "/{token}",
    response_model=RegistrationResponse,
    responses=_ERROR_RESPONSES,
    summary="Get own registration",
)
async def get_registration(
    token: str,
    request: Request,
    service: StageMachineService = Depends(get_stage_machine_service),
) -> RegistrationResponse:
    """Return the caller's registration record."""
    try:
        record = await service.get_by_token(token)
    except RegistrationEngineError as e:
        raise problem_exception(e, request) from None
    return registration_response(record)


@router.post(
    "/{token}/preferences",
    response_model=RegistrationResponse,
    responses=_ERROR_RESPONSES,
    summary="Submit venue and time preferences",
    description=(
        "Valid from INVITED or PREFERENCE_SUBMITTED. Re-submission replaces the "
        "previous preferences."
    ),
)
async def submit_preferences(
    token: str,
    request_data: SubmitPreferenceRequest,
    request: Request,
    service: StageMachineService = Depends(get_stage_machine_service),
) -> RegistrationResponse:
    """Submit or replace the caller's preferences."""
    try:
        record = await service.submit_preference(
            token,
            attendance_intent=request_data.attendance_intent,
            venue_preferences=request_data.venue_preferences,
            time_preferences=request_data.time_preferences,
            comments=request_data.comments,
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return registration_response(record)


@router.post(
    "/{token}/attendance",
    response_model=RegistrationResponse,
    responses=_ERROR_RESPONSES,
    summary="Confirm or decline attendance",
    description=(
        "Valid once a venue is assigned. Declining requires an absence reason and "
        "evaluates special vote eligibility."
    ),
)
async def confirm_attendance(
    token: str,
    request_data: ConfirmAttendanceRequest,
    request: Request,
    service: StageMachineService = Depends(get_stage_machine_service),
) -> RegistrationResponse:
    """Record the caller's attendance decision."""
    try:
        record = await service.confirm_attendance(
            token,
            attending=request_data.attending,
            absence_reason=request_data.absence_reason,
            absence_detail=request_data.absence_detail,
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return registration_response(record)


@router.post(
    "/{token}/special-vote",
    response_model=RegistrationResponse,
    responses=_ERROR_RESPONSES,
    summary="Request a special vote",
    description="Valid only for eligible members who are not attending.",
)
async def request_special_vote(
    token: str,
    request_data: SpecialVoteApplicationRequest,
    request: Request,
    service: StageMachineService = Depends(get_stage_machine_service),
) -> RegistrationResponse:
    """Record the caller's special vote request."""
    try:
        record = await service.request_special_vote(
            token,
            wants_special_vote=request_data.wants_special_vote,
            application_reason=request_data.application_reason,
        )
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return registration_response(record)
