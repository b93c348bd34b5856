"""Administrative API request/response models."""

from uuid import UUID

from pydantic import BaseModel, Field

from bmm_engine.api.models.common import CheckInMethodEnum, DateTimeWithZ, StageEnum


class AssignVenueRequest(BaseModel):
    """Venue and session assignment."""

    venue: str = Field(..., min_length=1, max_length=200)
    session_at: DateTimeWithZ


class CheckInRequest(BaseModel):
    """Check-in of a member by id."""

    method: CheckInMethodEnum = CheckInMethodEnum.MANUAL
    venue: str | None = Field(default=None, max_length=200)


class TicketCheckInRequest(BaseModel):
    """Check-in by scanned ticket reference."""

    venue: str | None = Field(default=None, max_length=200)


class BulkCheckInRequest(BaseModel):
    """Check-in of a batch of members."""

    member_ids: list[UUID] = Field(..., min_length=1, max_length=1000)
    venue: str | None = Field(default=None, max_length=200)


class OverrideStageRequest(BaseModel):
    """Privileged stage correction.

    Attributes:
        target_stage: Stage to force the record into.
        justification: Required justification for the audit trail.
        absence_reason: Reason code, required when forcing NOT_ATTENDING.
    """

    target_stage: StageEnum
    justification: str = Field(..., min_length=1, max_length=2000)
    absence_reason: str | None = Field(default=None, max_length=100)


class SpecialVoteDecisionRequest(BaseModel):
    """Approve or decline a pending special vote request."""

    approved: bool
    notes: str | None = Field(default=None, max_length=2000)


class SpecialVoteEligibilityRequest(BaseModel):
    """Administrative grant or revocation of special vote eligibility."""

    eligible: bool
    justification: str = Field(..., min_length=1, max_length=2000)


class TicketIssueResponse(BaseModel):
    """Result of a ticket issuance request."""

    member_id: UUID
    ticket_reference: str
    issued_at: DateTimeWithZ
    status: str


class CheckInResponse(BaseModel):
    """Result of a check-in request. Always describes the authoritative record."""

    member_id: UUID
    ticket_reference: str
    checked_in_at: DateTimeWithZ
    method: CheckInMethodEnum
    operator_id: str
    venue: str | None = None
    status: str


class BulkCheckInItem(BaseModel):
    """Per-member result of a bulk check-in."""

    member_id: UUID
    status: str | None = None
    error: str | None = None


class BulkCheckInResponse(BaseModel):
    """Results in request order (duplicates removed)."""

    results: list[BulkCheckInItem]
    checked_in: int
    already_checked_in: int
    failed: int


class RegistrationSummaryResponse(BaseModel):
    """Registration summary report."""

    total: int
    registered: int
    by_stage: dict[str, int]
    by_region: dict[str, int]
    attending: int
    not_attending: int
    undecided: int
    special_vote_eligible: int
    special_vote_requested: int
    special_vote_by_status: dict[str, int]
    tickets_issued: int
    checked_in: int
    check_ins_by_venue: dict[str, int]
    duplicate_check_in_attempts: int
