"""Domain models for the registration engine.

Contains value objects and domain models that represent
core business concepts. These models are immutable and
contain no infrastructure dependencies.
"""

from bmm_engine.domain.models.campaign import (
    Campaign,
    CampaignJob,
    CampaignKind,
    CampaignReport,
    Channel,
    DeliveryReceipt,
    JobFailure,
    JobStatus,
    MessageTemplate,
    RenderedMessage,
)
from bmm_engine.domain.models.region import SPECIAL_VOTE_REGIONS, Region
from bmm_engine.domain.models.registration import (
    STAGE_TRANSITIONS,
    AttendanceDecision,
    MemberRegistration,
    PreferenceData,
    RegistrationStage,
    SpecialVoteStatus,
    VenueAssignment,
    new_access_token,
)
from bmm_engine.domain.models.segment import (
    ContactPredicate,
    SegmentCriteria,
    SpecialVoteFilter,
)
from bmm_engine.domain.models.ticket import (
    CheckInMethod,
    CheckInOutcome,
    CheckInRecord,
    CheckInStatus,
    IssueStatus,
    OverrideAuditEntry,
    Ticket,
    TicketDelivery,
    TicketIssueOutcome,
)

__all__: list[str] = [
    "AttendanceDecision",
    "Campaign",
    "CampaignJob",
    "CampaignKind",
    "CampaignReport",
    "Channel",
    "CheckInMethod",
    "CheckInOutcome",
    "CheckInRecord",
    "CheckInStatus",
    "ContactPredicate",
    "DeliveryReceipt",
    "IssueStatus",
    "JobFailure",
    "JobStatus",
    "MemberRegistration",
    "MessageTemplate",
    "OverrideAuditEntry",
    "PreferenceData",
    "Region",
    "RegistrationStage",
    "RenderedMessage",
    "SPECIAL_VOTE_REGIONS",
    "STAGE_TRANSITIONS",
    "SegmentCriteria",
    "SpecialVoteFilter",
    "SpecialVoteStatus",
    "Ticket",
    "TicketDelivery",
    "TicketIssueOutcome",
    "VenueAssignment",
    "new_access_token",
]
