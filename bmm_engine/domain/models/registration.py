"""Member registration domain model and stage machine.

This module holds the single authoritative description of a member's
progress through the meeting pipeline: the stage enumeration, the
transition table, and the record whose construction enforces the
stage/flag invariants.

Stage Machine:
    INVITED -> PREFERENCE_SUBMITTED (member submits preferences)
    PREFERENCE_SUBMITTED -> PREFERENCE_SUBMITTED (re-submission)
    PREFERENCE_SUBMITTED -> VENUE_ASSIGNED (admin allocation)
    VENUE_ASSIGNED -> VENUE_ASSIGNED (re-assignment)
    VENUE_ASSIGNED -> ATTENDANCE_CONFIRMED | NOT_ATTENDING (member decision)
    ATTENDANCE_CONFIRMED <-> NOT_ATTENDING (correction before ticketing)
    ATTENDANCE_CONFIRMED -> TICKET_ISSUED (admin issues ticket)
    TICKET_ISSUED -> CHECKED_IN (arrival at venue)

Invariants (checked on every construction):
    special_vote_requested => special_vote_eligible
    ticket_issued => attendance == ATTENDING
    checked_in => ticket_issued
    stage agrees with preference/assignment/attendance/ticket/check-in data
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from bmm_engine.domain.errors.registration import (
    InvalidTransitionError,
    InvariantViolationError,
)
from bmm_engine.domain.models.region import Region
from bmm_engine.domain.models.ticket import CheckInMethod


class RegistrationStage(Enum):
    """Position of a registration record in the meeting pipeline.

    States:
        INVITED: Record created from the invitation import
        PREFERENCE_SUBMITTED: Member has stated venue/time preferences
        VENUE_ASSIGNED: Allocation has assigned a venue and session
        ATTENDANCE_CONFIRMED: Member confirmed they will attend
        NOT_ATTENDING: Member declined (side branch; may carry a special vote)
        TICKET_ISSUED: Entry ticket issued to a confirmed attendee
        CHECKED_IN: Ticket holder arrived at the venue (terminal)
    """

    INVITED = "INVITED"
    PREFERENCE_SUBMITTED = "PREFERENCE_SUBMITTED"
    VENUE_ASSIGNED = "VENUE_ASSIGNED"
    ATTENDANCE_CONFIRMED = "ATTENDANCE_CONFIRMED"
    NOT_ATTENDING = "NOT_ATTENDING"
    TICKET_ISSUED = "TICKET_ISSUED"
    CHECKED_IN = "CHECKED_IN"

    def valid_transitions(self) -> frozenset[RegistrationStage]:
        """Get the stages reachable from this stage by ordinary operations.

        Returns:
            Frozenset of target stages. Empty for CHECKED_IN.
        """
        return STAGE_TRANSITIONS.get(self, frozenset())

    def can_transition_to(self, target: RegistrationStage) -> bool:
        """Check whether an ordinary operation may move this stage to target."""
        return target in self.valid_transitions()


class AttendanceDecision(Enum):
    """The member's attendance decision. Exactly one value holds at a time."""

    UNDECIDED = "UNDECIDED"
    ATTENDING = "ATTENDING"
    NOT_ATTENDING = "NOT_ATTENDING"


class SpecialVoteStatus(Enum):
    """Review status of a special vote request.

    States:
        NOT_APPLICABLE: No request on file
        PENDING: Request awaiting admin decision
        APPROVED: Request approved
        DECLINED: Request declined
    """

    NOT_APPLICABLE = "NOT_APPLICABLE"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


# Transition table: the only place stage reachability is defined
STAGE_TRANSITIONS: dict[RegistrationStage, frozenset[RegistrationStage]] = {
    RegistrationStage.INVITED: frozenset({RegistrationStage.PREFERENCE_SUBMITTED}),
    RegistrationStage.PREFERENCE_SUBMITTED: frozenset(
        {
            RegistrationStage.PREFERENCE_SUBMITTED,
            RegistrationStage.VENUE_ASSIGNED,
        }
    ),
    RegistrationStage.VENUE_ASSIGNED: frozenset(
        {
            RegistrationStage.VENUE_ASSIGNED,
            RegistrationStage.ATTENDANCE_CONFIRMED,
            RegistrationStage.NOT_ATTENDING,
        }
    ),
    # Corrections between the two decisions are allowed until a ticket exists
    RegistrationStage.ATTENDANCE_CONFIRMED: frozenset(
        {
            RegistrationStage.ATTENDANCE_CONFIRMED,
            RegistrationStage.NOT_ATTENDING,
            RegistrationStage.TICKET_ISSUED,
        }
    ),
    RegistrationStage.NOT_ATTENDING: frozenset(
        {
            RegistrationStage.NOT_ATTENDING,
            RegistrationStage.ATTENDANCE_CONFIRMED,
        }
    ),
    RegistrationStage.TICKET_ISSUED: frozenset({RegistrationStage.CHECKED_IN}),
    RegistrationStage.CHECKED_IN: frozenset(),
}

# Stages on the attending chain that require a venue assignment
_ASSIGNED_STAGES: frozenset[RegistrationStage] = frozenset(
    {
        RegistrationStage.VENUE_ASSIGNED,
        RegistrationStage.ATTENDANCE_CONFIRMED,
        RegistrationStage.TICKET_ISSUED,
        RegistrationStage.CHECKED_IN,
    }
)

_ATTENDING_STAGES: frozenset[RegistrationStage] = frozenset(
    {
        RegistrationStage.ATTENDANCE_CONFIRMED,
        RegistrationStage.TICKET_ISSUED,
        RegistrationStage.CHECKED_IN,
    }
)

_TICKETED_STAGES: frozenset[RegistrationStage] = frozenset(
    {RegistrationStage.TICKET_ISSUED, RegistrationStage.CHECKED_IN}
)


def stages_reaching(target: RegistrationStage) -> list[RegistrationStage]:
    """List the stages from which an ordinary operation can reach target."""
    return [stage for stage in RegistrationStage if stage.can_transition_to(target)]


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def new_access_token() -> str:
    """Generate an opaque, unguessable self-service access token."""
    return secrets.token_urlsafe(32)


@dataclass(frozen=True, eq=True)
class PreferenceData:
    """Venue and time preferences captured from the member.

    Attributes:
        attendance_intent: Early intent to attend (None when unsure).
        venues: Preferred venues in priority order.
        times: Preferred time slots (e.g. "morning", "after-work").
        comments: Free-text comments or special requirements.
        submitted_at: When the preferences were (last) submitted.
    """

    attendance_intent: bool | None
    venues: tuple[str, ...] = ()
    times: tuple[str, ...] = ()
    comments: str | None = None
    submitted_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class VenueAssignment:
    """Venue and session assigned by the allocation process.

    Attributes:
        venue: Assigned venue name.
        session_at: Assigned session date and time.
        assigned_by: Operator who recorded the assignment.
        assigned_at: When the assignment was recorded.
    """

    venue: str
    session_at: datetime
    assigned_by: str | None = None
    assigned_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        """Validate assignment fields."""
        if not self.venue.strip():
            raise ValueError("Assigned venue must not be blank")


@dataclass(frozen=True, eq=True)
class MemberRegistration:
    """One member's registration record for one event.

    The record is immutable; every mutation produces a new instance and
    every instance satisfies the stage/flag invariants, so no code path
    can persist an inconsistent combination.

    Attributes:
        id: Registration identifier.
        event_id: Event the member was invited to.
        membership_number: Membership number (unique within the event).
        access_token: Opaque self-service token.
        name: Member display name.
        region: Canonical region.
        email / mobile: Raw contact handles (used only for delivery).
        has_email / has_mobile: Usable-channel flags (used for targeting).
        industry / sub_industry / forum: Classification for segmentation.
        stage: Current pipeline stage.
        preference: Submitted preferences, if any.
        assignment: Assigned venue and session, if any.
        attendance: Attendance decision.
        absence_reason / absence_detail: Normalised reason code and free text.
        attendance_decided_at: When the attendance decision was last made.
        special_vote_*: Eligibility, request and review data.
        ticket_reference / ticket_issued_at: Active ticket, if any.
        checked_in_at / check_in_*: Authoritative check-in, if any.
        version: Optimistic concurrency version.
        created_at / updated_at: Record timestamps (UTC).
    """

    id: UUID
    event_id: UUID
    membership_number: str
    access_token: str
    name: str
    region: Region
    email: str | None = None
    mobile: str | None = None
    has_email: bool = False
    has_mobile: bool = False
    industry: str | None = None
    sub_industry: str | None = None
    forum: str | None = None
    stage: RegistrationStage = RegistrationStage.INVITED
    preference: PreferenceData | None = None
    assignment: VenueAssignment | None = None
    attendance: AttendanceDecision = AttendanceDecision.UNDECIDED
    absence_reason: str | None = None
    absence_detail: str | None = None
    attendance_decided_at: datetime | None = None
    special_vote_eligible: bool = False
    special_vote_rationale: str | None = None
    special_vote_requested: bool = False
    special_vote_reason: str | None = None
    special_vote_status: SpecialVoteStatus = SpecialVoteStatus.NOT_APPLICABLE
    special_vote_requested_at: datetime | None = None
    special_vote_decided_by: str | None = None
    special_vote_decided_at: datetime | None = None
    ticket_reference: str | None = None
    ticket_issued_at: datetime | None = None
    checked_in_at: datetime | None = None
    check_in_method: CheckInMethod | None = None
    check_in_operator: str | None = None
    check_in_venue: str | None = None
    version: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        """Validate contact fields and the stage/flag invariants."""
        if not self.membership_number.strip():
            raise ValueError("Membership number must not be blank")
        if not self.access_token:
            raise ValueError("Access token must not be empty")
        if self.has_email and not self.email:
            raise ValueError("has_email requires an email address")
        if self.has_mobile and not self.mobile:
            raise ValueError("has_mobile requires a mobile number")
        self._check_invariants()

    @property
    def ticket_issued(self) -> bool:
        """True when the member holds an active ticket."""
        return self.ticket_reference is not None

    @property
    def checked_in(self) -> bool:
        """True when the member's arrival has been recorded."""
        return self.checked_in_at is not None

    @property
    def registered(self) -> bool:
        """True once the member has acted on the invitation."""
        return self.stage is not RegistrationStage.INVITED

    @property
    def first_name(self) -> str:
        """First word of the member's name."""
        parts = self.name.split()
        return parts[0] if parts else self.name

    def _check_invariants(self) -> None:
        """Raise InvariantViolationError if stage and flags disagree."""
        violations: list[str] = []
        stage = self.stage

        if self.special_vote_requested and not self.special_vote_eligible:
            violations.append("special vote requested without eligibility")
        if self.ticket_issued and self.attendance is not AttendanceDecision.ATTENDING:
            violations.append("ticket issued to a member not attending")
        if self.checked_in and not self.ticket_issued:
            violations.append("checked in without a ticket")

        if stage is RegistrationStage.INVITED and self.preference is not None:
            violations.append("INVITED must not carry preference data")
        if stage is RegistrationStage.PREFERENCE_SUBMITTED and self.preference is None:
            violations.append("PREFERENCE_SUBMITTED requires preference data")
        if stage in _ASSIGNED_STAGES and self.assignment is None:
            violations.append(f"{stage.value} requires a venue assignment")
        if stage in (RegistrationStage.INVITED, RegistrationStage.PREFERENCE_SUBMITTED) and (
            self.assignment is not None
        ):
            violations.append(f"{stage.value} must not carry a venue assignment")

        if stage in _ATTENDING_STAGES:
            expected = AttendanceDecision.ATTENDING
        elif stage is RegistrationStage.NOT_ATTENDING:
            expected = AttendanceDecision.NOT_ATTENDING
        else:
            expected = AttendanceDecision.UNDECIDED
        if self.attendance is not expected:
            violations.append(
                f"{stage.value} requires attendance {expected.value}, "
                f"found {self.attendance.value}"
            )

        if stage is RegistrationStage.NOT_ATTENDING:
            if not self.absence_reason:
                violations.append("NOT_ATTENDING requires an absence reason")
        elif self.absence_reason is not None:
            violations.append(f"{stage.value} must not carry an absence reason")

        if stage is not RegistrationStage.NOT_ATTENDING and (
            self.special_vote_eligible
            or self.special_vote_requested
            or self.special_vote_status is not SpecialVoteStatus.NOT_APPLICABLE
        ):
            violations.append("special vote data outside NOT_ATTENDING")
        if self.special_vote_requested == (
            self.special_vote_status is SpecialVoteStatus.NOT_APPLICABLE
        ):
            violations.append("special vote status does not match the request flag")

        if (stage in _TICKETED_STAGES) != self.ticket_issued:
            violations.append(f"ticket presence does not match {stage.value}")
        if (stage is RegistrationStage.CHECKED_IN) != self.checked_in:
            violations.append(f"check-in presence does not match {stage.value}")

        if violations:
            raise InvariantViolationError(
                f"Registration {self.membership_number} is inconsistent: "
                + "; ".join(violations)
            )

    def advance(
        self,
        operation: str,
        target: RegistrationStage,
        now: datetime,
        **changes: object,
    ) -> MemberRegistration:
        """Create the record that results from an ordinary operation.

        Enforces the transition table; the new instance re-checks the
        invariants on construction.

        Args:
            operation: Operation name, reported on rejection.
            target: Stage the operation moves to.
            now: Timestamp for updated_at.
            **changes: Field updates applied with the stage change.

        Returns:
            New MemberRegistration in the target stage.

        Raises:
            InvalidTransitionError: If target is not reachable from the current stage.
            InvariantViolationError: If the changes leave flags inconsistent.
        """
        if not self.stage.can_transition_to(target):
            raise InvalidTransitionError(
                operation=operation,
                current_stage=self.stage,
                allowed_from=stages_reaching(target),
            )
        return replace(self, stage=target, updated_at=now, **changes)

    def with_changes(self, now: datetime, **changes: object) -> MemberRegistration:
        """Create a record with field updates but no stage change."""
        return replace(self, updated_at=now, **changes)

    def with_version(self, version: int) -> MemberRegistration:
        """Create a record carrying a new persistence version."""
        return replace(self, version=version)

    def overridden(
        self,
        target: RegistrationStage,
        now: datetime,
        absence_reason: str | None = None,
        special_vote_eligible: bool = False,
        special_vote_rationale: str | None = None,
    ) -> MemberRegistration:
        """Create the record an admin stage override would produce.

        The transition table is bypassed. Data that belongs to stages after
        target is cleared; data that target requires must already exist
        (a ticket, a check-in or a venue assignment cannot be fabricated).

        Args:
            target: Stage to force.
            now: Timestamp for updated_at.
            absence_reason: Normalised reason code for a forced NOT_ATTENDING.
                Falls back to the reason already on the record.
            special_vote_eligible: Eligibility evaluated for that reason.
            special_vote_rationale: Rationale accompanying the eligibility.

        Returns:
            New MemberRegistration in the target stage.

        Raises:
            InvariantViolationError: If target needs data the record lacks.
        """
        changes: dict[str, object] = {"stage": target, "updated_at": now}

        if target is RegistrationStage.INVITED:
            changes["preference"] = None
        elif target is RegistrationStage.PREFERENCE_SUBMITTED and self.preference is None:
            raise InvariantViolationError(
                "Cannot override to PREFERENCE_SUBMITTED without preference data"
            )

        if target in (RegistrationStage.INVITED, RegistrationStage.PREFERENCE_SUBMITTED):
            changes["assignment"] = None
        elif target in _ASSIGNED_STAGES and self.assignment is None:
            raise InvariantViolationError(
                f"Cannot override to {target.value} without a venue assignment"
            )

        if target in _TICKETED_STAGES and not self.ticket_issued:
            raise InvariantViolationError(
                f"Cannot override to {target.value}: no ticket has been issued"
            )
        if target not in _TICKETED_STAGES:
            changes.update(ticket_reference=None, ticket_issued_at=None)

        if target is RegistrationStage.CHECKED_IN and not self.checked_in:
            raise InvariantViolationError(
                "Cannot override to CHECKED_IN: no check-in has been recorded"
            )
        if target is not RegistrationStage.CHECKED_IN:
            changes.update(_CLEARED_CHECK_IN)

        if target is RegistrationStage.NOT_ATTENDING:
            reason = absence_reason or self.absence_reason
            if not reason:
                raise InvariantViolationError(
                    "Cannot override to NOT_ATTENDING without an absence reason"
                )
            changes.update(
                attendance=AttendanceDecision.NOT_ATTENDING,
                absence_reason=reason,
                special_vote_eligible=special_vote_eligible,
                special_vote_rationale=special_vote_rationale,
            )
            # A request survives only a re-evaluation that keeps the member eligible
            if not special_vote_eligible or self.stage is not RegistrationStage.NOT_ATTENDING:
                changes.update(_CLEARED_SPECIAL_VOTE_REQUEST)
        else:
            changes.update(absence_reason=None, absence_detail=None)
            changes.update(_CLEARED_SPECIAL_VOTE)
            changes["attendance"] = (
                AttendanceDecision.ATTENDING
                if target in _ATTENDING_STAGES
                else AttendanceDecision.UNDECIDED
            )

        return replace(self, **changes)


# Field resets shared by the stage machine and the override path
_CLEARED_SPECIAL_VOTE_REQUEST: dict[str, object] = {
    "special_vote_requested": False,
    "special_vote_reason": None,
    "special_vote_status": SpecialVoteStatus.NOT_APPLICABLE,
    "special_vote_requested_at": None,
    "special_vote_decided_by": None,
    "special_vote_decided_at": None,
}

_CLEARED_SPECIAL_VOTE: dict[str, object] = {
    "special_vote_eligible": False,
    "special_vote_rationale": None,
    **_CLEARED_SPECIAL_VOTE_REQUEST,
}

_CLEARED_CHECK_IN: dict[str, object] = {
    "checked_in_at": None,
    "check_in_method": None,
    "check_in_operator": None,
    "check_in_venue": None,
}


def cleared_special_vote(keep_eligibility: bool = False) -> dict[str, object]:
    """Field updates that remove special vote data from a record.

    Args:
        keep_eligibility: Withdraw only the request, keeping the eligibility flag.
    """
    return dict(_CLEARED_SPECIAL_VOTE_REQUEST if keep_eligibility else _CLEARED_SPECIAL_VOTE)
