"""Segment filter: pure recipient selection predicate.

Evaluates SegmentCriteria against registration records. The filter is
deterministic and total: every record either matches or it does not,
contradictory criteria simply select nothing, and nothing here raises.
Selection order is by membership number so that previews and sends list
recipients identically.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from bmm_engine.domain.models.registration import (
    AttendanceDecision,
    MemberRegistration,
    SpecialVoteStatus,
)
from bmm_engine.domain.models.segment import (
    ContactPredicate,
    SegmentCriteria,
    SpecialVoteFilter,
)


def _fold(value: str | None) -> str:
    return (value or "").strip().casefold()


def _folded(values: Iterable[str]) -> set[str]:
    return {_fold(v) for v in values}


def _matches_special_vote(
    record: MemberRegistration, special_vote: SpecialVoteFilter
) -> bool:
    if special_vote is SpecialVoteFilter.ELIGIBLE:
        return record.special_vote_eligible
    if special_vote is SpecialVoteFilter.REQUESTED:
        return record.special_vote_requested
    if special_vote is SpecialVoteFilter.PENDING:
        return record.special_vote_status is SpecialVoteStatus.PENDING
    if special_vote is SpecialVoteFilter.APPROVED:
        return record.special_vote_status is SpecialVoteStatus.APPROVED
    if special_vote is SpecialVoteFilter.DECLINED:
        return record.special_vote_status is SpecialVoteStatus.DECLINED
    # NOT_ATTENDING_WITHOUT_REQUEST
    return (
        record.attendance is AttendanceDecision.NOT_ATTENDING
        and not record.special_vote_requested
    )


def _matches_contact(record: MemberRegistration, contact: ContactPredicate) -> bool:
    if contact is ContactPredicate.EMAIL_ONLY:
        return record.has_email and not record.has_mobile
    if contact is ContactPredicate.MOBILE_ONLY:
        return record.has_mobile and not record.has_email
    if contact is ContactPredicate.BOTH:
        return record.has_email and record.has_mobile
    return record.has_email or record.has_mobile


def _matches_search(record: MemberRegistration, search: str) -> bool:
    needle = _fold(search)
    if not needle:
        return True
    haystacks = (record.name, record.email, record.membership_number)
    return any(needle in _fold(h) for h in haystacks)


def matches(record: MemberRegistration, criteria: SegmentCriteria) -> bool:
    """Check whether one registration satisfies every set dimension.

    Args:
        record: Registration to test.
        criteria: Segment definition.

    Returns:
        True if the record is in the segment.
    """
    if criteria.event_id is not None and record.event_id != criteria.event_id:
        return False
    if criteria.member_ids and record.id not in criteria.member_ids:
        return False

    if criteria.regions and record.region not in criteria.regions:
        return False
    if record.region in criteria.exclude_regions:
        return False
    if criteria.industry and _fold(record.industry) != _fold(criteria.industry):
        return False
    if criteria.sub_industry and _fold(record.sub_industry) != _fold(
        criteria.sub_industry
    ):
        return False
    if criteria.search and not _matches_search(record, criteria.search):
        return False

    if criteria.registered is not None and record.registered != criteria.registered:
        return False
    if criteria.attendance is not None and record.attendance is not criteria.attendance:
        return False
    if criteria.stages and record.stage not in criteria.stages:
        return False
    if criteria.preference_submitted is not None and (
        (record.preference is not None) != criteria.preference_submitted
    ):
        return False
    if criteria.venue_assigned is not None and (
        (record.assignment is not None) != criteria.venue_assigned
    ):
        return False
    if criteria.special_vote is not None and not _matches_special_vote(
        record, criteria.special_vote
    ):
        return False

    forum = _fold(record.forum)
    if criteria.include_forums and forum not in _folded(criteria.include_forums):
        return False
    if criteria.exclude_forums and forum in _folded(criteria.exclude_forums):
        return False

    venue = _fold(record.assignment.venue) if record.assignment else ""
    if criteria.include_venues and venue not in _folded(criteria.include_venues):
        return False
    if criteria.exclude_venues and venue and venue in _folded(criteria.exclude_venues):
        return False

    if criteria.time_preferences:
        preferred = _folded(record.preference.times) if record.preference else set()
        if not preferred & _folded(criteria.time_preferences):
            return False

    if criteria.contact is not None and not _matches_contact(record, criteria.contact):
        return False

    return True


def select(
    records: Iterable[MemberRegistration],
    criteria: SegmentCriteria,
) -> list[MemberRegistration]:
    """Select the registrations in a segment, ordered by membership number.

    Records are deduplicated by id, so a caller passing overlapping inputs
    still gets each member once.
    """
    seen: dict[UUID, MemberRegistration] = {}
    for record in records:
        if record.id not in seen and matches(record, criteria):
            seen[record.id] = record
    return sorted(seen.values(), key=lambda r: (r.membership_number, str(r.id)))

