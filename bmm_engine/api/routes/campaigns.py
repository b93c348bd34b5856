"""Segment preview and campaign API routes.

Preview is a pure read. Creating a campaign dispatches it immediately and
returns the report once every recipient job has resolved. A template that
names an unknown placeholder is rejected before anything is sent; a known
placeholder with no value for a member fails only that member's job.
Re-dispatching a stored campaign sends only to members not yet reached.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from bmm_engine.api.auth.operator_auth import get_operator_id
from bmm_engine.api.dependencies.registration import (
    get_campaign_dispatcher_service,
    get_segment_service,
)
from bmm_engine.api.errors import problem_exception
from bmm_engine.api.models.campaign import (
    CampaignReportResponse,
    CreateCampaignRequest,
    JobFailureModel,
    SegmentCriteriaModel,
    SegmentPreviewResponse,
)
from bmm_engine.api.models.common import ProblemDetail
from bmm_engine.application.services import CampaignDispatcherService, SegmentService
from bmm_engine.domain.exceptions import RegistrationEngineError
from bmm_engine.domain.models.campaign import (
    Campaign,
    CampaignKind,
    CampaignReport,
    Channel,
    MessageTemplate,
)
from bmm_engine.domain.models.region import Region
from bmm_engine.domain.models.registration import AttendanceDecision, RegistrationStage
from bmm_engine.domain.models.segment import (
    ContactPredicate,
    SegmentCriteria,
    SpecialVoteFilter,
)
from bmm_engine.domain.services.template_renderer import validate_template

router = APIRouter(prefix="/v1/admin", tags=["campaigns"])


def to_segment_criteria(model: SegmentCriteriaModel) -> SegmentCriteria:
    """Convert API criteria to the domain filter.

    Raises:
        ValueError: If a region spelling is unknown.
    """
    return SegmentCriteria(
        event_id=model.event_id,
        regions=frozenset(Region.parse(r) for r in model.regions),
        exclude_regions=frozenset(Region.parse(r) for r in model.exclude_regions),
        industry=model.industry,
        sub_industry=model.sub_industry,
        search=model.search,
        registered=model.registered,
        attendance=AttendanceDecision(model.attendance.value) if model.attendance else None,
        stages=frozenset(RegistrationStage(s.value) for s in model.stages),
        preference_submitted=model.preference_submitted,
        venue_assigned=model.venue_assigned,
        special_vote=SpecialVoteFilter(model.special_vote.value) if model.special_vote else None,
        include_forums=frozenset(model.include_forums),
        exclude_forums=frozenset(model.exclude_forums),
        include_venues=frozenset(model.include_venues),
        exclude_venues=frozenset(model.exclude_venues),
        time_preferences=frozenset(model.time_preferences),
        contact=ContactPredicate(model.contact.value) if model.contact else None,
        member_ids=frozenset(model.member_ids),
    )


def _report_response(report: CampaignReport) -> CampaignReportResponse:
    return CampaignReportResponse(
        campaign_id=report.campaign_id,
        total=report.total,
        queued=report.queued,
        sent=report.sent,
        failed=report.failed,
        skipped=report.skipped,
        failures=[
            JobFailureModel(member_id=f.member_id, error=f.error, retryable=f.retryable)
            for f in report.failures
        ],
    )


@router.post(
    "/segments/preview",
    response_model=SegmentPreviewResponse,
    responses={
        401: {"model": ProblemDetail, "description": "Operator identity missing"},
        422: {"model": ProblemDetail, "description": "Invalid criteria"},
    },
    summary="Preview a segment",
    description="Side-effect free: returns the exact recipients a campaign would target.",
)
async def preview_segment(
    criteria: SegmentCriteriaModel,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: SegmentService = Depends(get_segment_service),
) -> SegmentPreviewResponse:
    """Preview the members selected by the criteria."""
    try:
        preview = await service.preview(to_segment_criteria(criteria))
    except ValueError as e:
        raise problem_exception(e, request) from None
    return SegmentPreviewResponse(
        member_ids=list(preview.member_ids),
        total=preview.total,
        email=preview.email,
        sms_only=preview.sms_only,
        unreachable=preview.unreachable,
    )


@router.post(
    "/campaigns",
    response_model=CampaignReportResponse,
    status_code=201,
    responses={
        401: {"model": ProblemDetail, "description": "Operator identity missing"},
        422: {"model": ProblemDetail, "description": "Invalid campaign or template"},
    },
    summary="Create and dispatch a campaign",
)
async def create_campaign(
    request_data: CreateCampaignRequest,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: CampaignDispatcherService = Depends(get_campaign_dispatcher_service),
) -> CampaignReportResponse:
    """Dispatch a campaign to its segment and return the resulting report."""
    try:
        template = MessageTemplate(body=request_data.body, subject=request_data.subject)
        validate_template(template)
        campaign = Campaign(
            name=request_data.name,
            template=template,
            criteria=to_segment_criteria(request_data.criteria),
            kind=CampaignKind(request_data.kind.value),
            channel=Channel(request_data.channel.value) if request_data.channel else None,
            created_by=operator_id,
        )
        report = await service.dispatch(campaign)
    except (RegistrationEngineError, ValueError) as e:
        raise problem_exception(e, request) from None
    return _report_response(report)


@router.get(
    "/campaigns/{campaign_id}",
    response_model=CampaignReportResponse,
    responses={
        401: {"model": ProblemDetail, "description": "Operator identity missing"},
        404: {"model": ProblemDetail, "description": "Campaign not found"},
    },
    summary="Get campaign report",
)
async def get_campaign_report(
    campaign_id: UUID,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: CampaignDispatcherService = Depends(get_campaign_dispatcher_service),
) -> CampaignReportResponse:
    """Return a campaign's current progress."""
    try:
        report = await service.get_report(campaign_id)
    except RegistrationEngineError as e:
        raise problem_exception(e, request) from None
    return _report_response(report)


@router.post(
    "/campaigns/{campaign_id}/dispatch",
    response_model=CampaignReportResponse,
    responses={
        401: {"model": ProblemDetail, "description": "Operator identity missing"},
        404: {"model": ProblemDetail, "description": "Campaign not found"},
    },
    summary="Resume a campaign",
    description="Re-queues failed jobs and new segment members; sent and skipped jobs are left alone.",
)
async def resume_campaign(
    campaign_id: UUID,
    request: Request,
    operator_id: str = Depends(get_operator_id),
    service: CampaignDispatcherService = Depends(get_campaign_dispatcher_service),
) -> CampaignReportResponse:
    try:
        report = await service.resume(campaign_id)
    except RegistrationEngineError as e:
        raise problem_exception(e, request) from None
    return _report_response(report)
