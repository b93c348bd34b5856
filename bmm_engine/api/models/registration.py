"""Self-service registration API request/response models.

The member-facing view never includes the access token or raw contact
handles; the token is already in the caller's URL.
"""

from uuid import UUID

from pydantic import BaseModel, Field

from bmm_engine.api.models.common import DateTimeWithZ, StageEnum


class SubmitPreferenceRequest(BaseModel):
    """Venue and time preferences.

    Attributes:
        attendance_intent: Early intent to attend (null when unsure).
        venue_preferences: Preferred venues in priority order.
        time_preferences: Preferred time slots.
        comments: Free-text comments or special requirements.
    """

    attendance_intent: bool | None = Field(default=None)
    venue_preferences: list[str] = Field(default_factory=list, max_length=20)
    time_preferences: list[str] = Field(default_factory=list, max_length=20)
    comments: str | None = Field(default=None, max_length=2000)


class ConfirmAttendanceRequest(BaseModel):
    """Attendance decision.

    A reason is required when attending is false; see the eligibility
    reason codes (sick, distance, work) or "other" with free text.
    """

    attending: bool
    absence_reason: str | None = Field(default=None, max_length=100)
    absence_detail: str | None = Field(default=None, max_length=2000)


class SpecialVoteApplicationRequest(BaseModel):
    """Special vote request from a member who will not attend."""

    wants_special_vote: bool = True
    application_reason: str | None = Field(default=None, max_length=2000)


class PreferenceModel(BaseModel):
    """Submitted preferences."""

    attendance_intent: bool | None
    venues: list[str]
    times: list[str]
    comments: str | None
    submitted_at: DateTimeWithZ


class AssignmentModel(BaseModel):
    """Assigned venue and session."""

    venue: str
    session_at: DateTimeWithZ


class RegistrationResponse(BaseModel):
    """A member's view of their own registration."""

    member_id: UUID
    event_id: UUID
    membership_number: str
    name: str
    region: str
    stage: StageEnum
    preference: PreferenceModel | None = None
    assignment: AssignmentModel | None = None
    attendance: str
    absence_reason: str | None = None
    special_vote_eligible: bool
    special_vote_rationale: str | None = None
    special_vote_requested: bool
    special_vote_status: str
    ticket_reference: str | None = None
    ticket_issued_at: DateTimeWithZ | None = None
    checked_in_at: DateTimeWithZ | None = None
    version: int
