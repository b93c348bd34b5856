"""Recipient segmentation criteria.

A SegmentCriteria value describes which registrations a campaign targets.
Every dimension is optional and dimensions are AND-combined. An unset
dimension (None or an empty collection) matches everything, so an empty
criteria object selects every registration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from bmm_engine.domain.models.region import Region
from bmm_engine.domain.models.registration import AttendanceDecision, RegistrationStage


class SpecialVoteFilter(Enum):
    """Special vote dimension of a segment.

    Filters:
        ELIGIBLE: Eligible for a special vote
        REQUESTED: Has requested a special vote (any review status)
        PENDING / APPROVED / DECLINED: Request in that review status
        NOT_ATTENDING_WITHOUT_REQUEST: Not attending and no request on file
    """

    ELIGIBLE = "ELIGIBLE"
    REQUESTED = "REQUESTED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    NOT_ATTENDING_WITHOUT_REQUEST = "NOT_ATTENDING_WITHOUT_REQUEST"


class ContactPredicate(Enum):
    """Contact channel dimension, evaluated from the usability flags only."""

    EMAIL_ONLY = "EMAIL_ONLY"
    MOBILE_ONLY = "MOBILE_ONLY"
    BOTH = "BOTH"
    EITHER = "EITHER"


@dataclass(frozen=True, eq=True)
class SegmentCriteria:
    """Filter definition for selecting campaign recipients.

    Attributes:
        event_id: Restrict to one event.
        regions / exclude_regions: Region inclusion and exclusion.
        industry / sub_industry: Case-insensitive equality.
        search: Case-insensitive substring over name, email and membership number.
        registered: True for members past INVITED, False for members still INVITED.
        attendance: Attendance decision.
        stages: Any of these stages.
        preference_submitted: Whether preference data exists.
        venue_assigned: Whether a venue assignment exists.
        special_vote: Special vote filter.
        include_forums / exclude_forums: Forum inclusion and exclusion.
        include_venues / exclude_venues: Assigned venue inclusion and exclusion.
        time_preferences: Members who preferred any of these time slots.
        contact: Contact channel predicate.
        member_ids: Explicit admin-selected subset.
    """

    event_id: UUID | None = None
    regions: frozenset[Region] = frozenset()
    exclude_regions: frozenset[Region] = frozenset()
    industry: str | None = None
    sub_industry: str | None = None
    search: str | None = None
    registered: bool | None = None
    attendance: AttendanceDecision | None = None
    stages: frozenset[RegistrationStage] = frozenset()
    preference_submitted: bool | None = None
    venue_assigned: bool | None = None
    special_vote: SpecialVoteFilter | None = None
    include_forums: frozenset[str] = frozenset()
    exclude_forums: frozenset[str] = frozenset()
    include_venues: frozenset[str] = frozenset()
    exclude_venues: frozenset[str] = frozenset()
    time_preferences: frozenset[str] = frozenset()
    contact: ContactPredicate | None = None
    member_ids: frozenset[UUID] = frozenset()
