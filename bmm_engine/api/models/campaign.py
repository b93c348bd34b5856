"""Segment and campaign API request/response models."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from bmm_engine.api.models.common import StageEnum


class AttendanceEnum(str, Enum):
    """Attendance decision filter."""

    UNDECIDED = "UNDECIDED"
    ATTENDING = "ATTENDING"
    NOT_ATTENDING = "NOT_ATTENDING"


class SpecialVoteFilterEnum(str, Enum):
    """Special vote filter."""

    ELIGIBLE = "ELIGIBLE"
    REQUESTED = "REQUESTED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    NOT_ATTENDING_WITHOUT_REQUEST = "NOT_ATTENDING_WITHOUT_REQUEST"


class ContactEnum(str, Enum):
    """Contact channel filter."""

    EMAIL_ONLY = "EMAIL_ONLY"
    MOBILE_ONLY = "MOBILE_ONLY"
    BOTH = "BOTH"
    EITHER = "EITHER"


class CampaignKindEnum(str, Enum):
    """Campaign purpose."""

    GENERAL = "GENERAL"
    TICKET = "TICKET"


class ChannelEnum(str, Enum):
    """Delivery channel."""

    EMAIL = "EMAIL"
    SMS = "SMS"


class SegmentCriteriaModel(BaseModel):
    """Segment filter. Every field is optional; omitted fields do not filter.

    Regions accept any common spelling ("Central", "central region").
    """

    event_id: UUID | None = None
    regions: list[str] = Field(default_factory=list)
    exclude_regions: list[str] = Field(default_factory=list)
    industry: str | None = None
    sub_industry: str | None = None
    search: str | None = Field(default=None, max_length=200)
    registered: bool | None = None
    attendance: AttendanceEnum | None = None
    stages: list[StageEnum] = Field(default_factory=list)
    preference_submitted: bool | None = None
    venue_assigned: bool | None = None
    special_vote: SpecialVoteFilterEnum | None = None
    include_forums: list[str] = Field(default_factory=list)
    exclude_forums: list[str] = Field(default_factory=list)
    include_venues: list[str] = Field(default_factory=list)
    exclude_venues: list[str] = Field(default_factory=list)
    time_preferences: list[str] = Field(default_factory=list)
    contact: ContactEnum | None = None
    member_ids: list[UUID] = Field(default_factory=list)


class SegmentPreviewResponse(BaseModel):
    """Side-effect free segment summary."""

    member_ids: list[UUID]
    total: int
    email: int
    sms_only: int
    unreachable: int


class CreateCampaignRequest(BaseModel):
    """Campaign definition; dispatched immediately."""

    name: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1, max_length=10000)
    subject: str | None = Field(default=None, max_length=300)
    criteria: SegmentCriteriaModel = Field(default_factory=SegmentCriteriaModel)
    kind: CampaignKindEnum = CampaignKindEnum.GENERAL
    channel: ChannelEnum | None = None


class JobFailureModel(BaseModel):
    """One failed recipient."""

    member_id: UUID
    error: str
    retryable: bool


class CampaignReportResponse(BaseModel):
    """Campaign progress."""

    campaign_id: UUID
    total: int
    queued: int
    sent: int
    failed: int
    skipped: int
    failures: list[JobFailureModel]
