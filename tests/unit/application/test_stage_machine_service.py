"""Unit tests for StageMachineService.

Covers the member self-service operations, the admin operations and the
idempotency guarantees of ticket issuance and check-in.
"""

import asyncio
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from bmm_engine.application.services import StageMachineService, TicketLedgerService
from bmm_engine.domain.errors import (
    InvalidTransitionError,
    InvariantViolationError,
    MemberNotFoundError,
    MissingReasonError,
    NoTicketError,
    NotAttendingError,
    NotEligibleError,
)
from bmm_engine.domain.models.region import Region
from bmm_engine.domain.models.registration import (
    AttendanceDecision,
    MemberRegistration,
    RegistrationStage,
    SpecialVoteStatus,
)
from bmm_engine.domain.models.ticket import CheckInMethod, CheckInStatus, IssueStatus
from bmm_engine.infrastructure.monitoring.metrics import EngineMetrics
from bmm_engine.infrastructure.stubs import (
    RegistrationRepositoryStub,
    TicketLedgerRepositoryStub,
)
from tests.helpers import FakeTimeAuthority, make_registration

SESSION_AT = datetime(2026, 3, 12, 14, 0, 0, tzinfo=timezone.utc)


def _counted(metrics: EngineMetrics, **labels: str) -> float:
    total = 0.0
    for family in metrics.get_registry().collect():
        for sample in family.samples:
            if sample.name != "bmm_stage_transitions_total":
                continue
            if all(sample.labels.get(k) == v for k, v in labels.items()):
                total += sample.value
    return total


async def _seed(
    registrations: RegistrationRepositoryStub,
    stage: RegistrationStage = RegistrationStage.INVITED,
    **kwargs: object,
) -> MemberRegistration:
    return await registrations.add(make_registration(stage, **kwargs))


async def _ticketed(
    stage_machine: StageMachineService,
    registrations: RegistrationRepositoryStub,
    **kwargs: object,
) -> MemberRegistration:
    """Seed a confirmed attendee and issue their ticket through the service."""
    member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED, **kwargs)
    await stage_machine.issue_ticket(member.id, operator_id="ops")
    return await stage_machine.get(member.id)


class TestReads:
    @pytest.mark.asyncio
    async def test_get_by_token(self, stage_machine, registrations) -> None:
        member = await _seed(registrations)
        found = await stage_machine.get_by_token(f"  {member.access_token} ")
        assert found.id == member.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["", "   ", "not-a-token"])
    async def test_unknown_token(self, stage_machine, token: str) -> None:
        with pytest.raises(MemberNotFoundError):
            await stage_machine.get_by_token(token)

    @pytest.mark.asyncio
    async def test_unknown_member(self, stage_machine) -> None:
        with pytest.raises(MemberNotFoundError):
            await stage_machine.get(uuid4())


class TestSubmitPreference:
    @pytest.mark.asyncio
    async def test_first_submission(
        self, stage_machine, registrations, fake_time_authority
    ) -> None:
        member = await _seed(registrations)

        saved = await stage_machine.submit_preference(
            member.access_token,
            attendance_intent=True,
            venue_preferences=[" Wellington Town Hall ", ""],
            time_preferences=["morning"],
            comments="  ",
        )

        assert saved.stage is RegistrationStage.PREFERENCE_SUBMITTED
        assert saved.version == 1
        assert saved.preference is not None
        assert saved.preference.venues == ("Wellington Town Hall",)
        assert saved.preference.comments is None
        assert saved.preference.submitted_at == fake_time_authority.now()

    @pytest.mark.asyncio
    async def test_resubmission_overwrites(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.PREFERENCE_SUBMITTED)

        saved = await stage_machine.submit_preference(
            member.access_token, attendance_intent=False, venue_preferences=["Dunedin"]
        )

        assert saved.stage is RegistrationStage.PREFERENCE_SUBMITTED
        assert saved.preference.venues == ("Dunedin",)
        assert saved.preference.attendance_intent is False

    @pytest.mark.asyncio
    async def test_rejected_once_venue_assigned(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.VENUE_ASSIGNED)

        with pytest.raises(InvalidTransitionError):
            await stage_machine.submit_preference(member.access_token, attendance_intent=True)

        stored = await stage_machine.get(member.id)
        assert stored == member


class TestConfirmAttendance:
    @pytest.mark.asyncio
    async def test_attending(self, stage_machine, registrations, fake_time_authority) -> None:
        member = await _seed(registrations, RegistrationStage.VENUE_ASSIGNED)

        saved = await stage_machine.confirm_attendance(member.access_token, attending=True)

        assert saved.stage is RegistrationStage.ATTENDANCE_CONFIRMED
        assert saved.attendance is AttendanceDecision.ATTENDING
        assert saved.attendance_decided_at == fake_time_authority.now()

    @pytest.mark.asyncio
    async def test_declining_requires_reason(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.VENUE_ASSIGNED)

        with pytest.raises(MissingReasonError):
            await stage_machine.confirm_attendance(
                member.access_token, attending=False, absence_reason="  "
            )

        assert (await stage_machine.get(member.id)).version == member.version

    @pytest.mark.asyncio
    async def test_southern_sick_member_becomes_eligible(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(
            registrations, RegistrationStage.VENUE_ASSIGNED, region=Region.SOUTHERN
        )

        saved = await stage_machine.confirm_attendance(
            member.access_token, attending=False, absence_reason="Sick"
        )

        assert saved.stage is RegistrationStage.NOT_ATTENDING
        assert saved.absence_reason == "sick"
        assert saved.special_vote_eligible
        assert saved.special_vote_rationale

    @pytest.mark.asyncio
    async def test_northern_member_is_never_eligible(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(
            registrations, RegistrationStage.VENUE_ASSIGNED, region=Region.NORTHERN
        )

        saved = await stage_machine.confirm_attendance(
            member.access_token, attending=False, absence_reason="distance"
        )

        assert not saved.special_vote_eligible
        assert saved.special_vote_rationale is None

    @pytest.mark.asyncio
    async def test_not_valid_before_venue_assignment(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(registrations, RegistrationStage.PREFERENCE_SUBMITTED)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await stage_machine.confirm_attendance(member.access_token, attending=True)

        assert RegistrationStage.VENUE_ASSIGNED in exc_info.value.allowed_from

    @pytest.mark.asyncio
    async def test_correction_to_attending_clears_special_vote(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(
            registrations,
            RegistrationStage.NOT_ATTENDING,
            absence_reason="sick",
            special_vote_eligible=True,
            special_vote_requested=True,
            special_vote_status=SpecialVoteStatus.PENDING,
        )

        saved = await stage_machine.confirm_attendance(member.access_token, attending=True)

        assert saved.stage is RegistrationStage.ATTENDANCE_CONFIRMED
        assert saved.absence_reason is None
        assert not saved.special_vote_eligible
        assert not saved.special_vote_requested

    @pytest.mark.asyncio
    async def test_correction_keeps_request_while_still_eligible(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(
            registrations,
            RegistrationStage.NOT_ATTENDING,
            region=Region.CENTRAL,
            absence_reason="sick",
            special_vote_eligible=True,
            special_vote_requested=True,
            special_vote_status=SpecialVoteStatus.PENDING,
        )

        saved = await stage_machine.confirm_attendance(
            member.access_token, attending=False, absence_reason="work"
        )

        assert saved.absence_reason == "work"
        assert saved.special_vote_requested
        assert saved.special_vote_status is SpecialVoteStatus.PENDING

    @pytest.mark.asyncio
    async def test_correction_drops_request_when_no_longer_eligible(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(
            registrations,
            RegistrationStage.NOT_ATTENDING,
            absence_reason="sick",
            special_vote_eligible=True,
            special_vote_requested=True,
            special_vote_status=SpecialVoteStatus.PENDING,
        )

        saved = await stage_machine.confirm_attendance(
            member.access_token, attending=False, absence_reason="other"
        )

        assert not saved.special_vote_eligible
        assert not saved.special_vote_requested
        assert saved.special_vote_status is SpecialVoteStatus.NOT_APPLICABLE

    @pytest.mark.asyncio
    async def test_no_correction_after_ticket(self, stage_machine, registrations) -> None:
        member = await _ticketed(stage_machine, registrations)

        with pytest.raises(InvalidTransitionError):
            await stage_machine.confirm_attendance(
                member.access_token, attending=False, absence_reason="sick"
            )


class TestRequestSpecialVote:
    @pytest.fixture
    async def eligible_member(self, registrations):
        return await _seed(
            registrations,
            RegistrationStage.NOT_ATTENDING,
            region=Region.SOUTHERN,
            absence_reason="sick",
            special_vote_eligible=True,
        )

    @pytest.mark.asyncio
    async def test_request_is_pending(
        self, stage_machine, eligible_member, fake_time_authority
    ) -> None:
        saved = await stage_machine.request_special_vote(
            eligible_member.access_token, True, application_reason="hospital"
        )

        assert saved.stage is RegistrationStage.NOT_ATTENDING
        assert saved.special_vote_requested
        assert saved.special_vote_status is SpecialVoteStatus.PENDING
        assert saved.special_vote_reason == "hospital"
        assert saved.special_vote_requested_at == fake_time_authority.now()

    @pytest.mark.asyncio
    async def test_auto_approval(
        self, registrations, ledger, fake_time_authority, eligible_member
    ) -> None:
        service = StageMachineService(
            registrations, ledger, fake_time_authority, auto_approve_special_votes=True
        )

        saved = await service.request_special_vote(eligible_member.access_token, True)

        assert saved.special_vote_status is SpecialVoteStatus.APPROVED

    @pytest.mark.asyncio
    async def test_withdrawal_keeps_eligibility(self, stage_machine, eligible_member) -> None:
        await stage_machine.request_special_vote(eligible_member.access_token, True)

        saved = await stage_machine.request_special_vote(eligible_member.access_token, False)

        assert saved.special_vote_eligible
        assert not saved.special_vote_requested
        assert saved.special_vote_status is SpecialVoteStatus.NOT_APPLICABLE

    @pytest.mark.asyncio
    async def test_repeat_request_keeps_decision(self, stage_machine, eligible_member) -> None:
        await stage_machine.request_special_vote(eligible_member.access_token, True)
        await stage_machine.decide_special_vote(eligible_member.id, True, "ops")

        saved = await stage_machine.request_special_vote(
            eligible_member.access_token, True, application_reason="updated"
        )

        assert saved.special_vote_status is SpecialVoteStatus.APPROVED
        assert saved.special_vote_reason == "updated"

    @pytest.mark.asyncio
    async def test_ineligible_member_rejected(self, stage_machine, registrations) -> None:
        member = await _seed(
            registrations, RegistrationStage.NOT_ATTENDING, region=Region.NORTHERN
        )

        with pytest.raises(NotEligibleError):
            await stage_machine.request_special_vote(member.access_token, True)

    @pytest.mark.asyncio
    async def test_attending_member_rejected(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED)

        with pytest.raises(NotEligibleError):
            await stage_machine.request_special_vote(member.access_token, True)


class TestAssignVenue:
    @pytest.mark.asyncio
    async def test_assignment(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.PREFERENCE_SUBMITTED)

        saved = await stage_machine.assign_venue(
            member.id, " Dunedin Hall ", SESSION_AT, operator_id="ops"
        )

        assert saved.stage is RegistrationStage.VENUE_ASSIGNED
        assert saved.assignment.venue == "Dunedin Hall"
        assert saved.assignment.session_at == SESSION_AT
        assert saved.assignment.assigned_by == "ops"

    @pytest.mark.asyncio
    async def test_reassignment_overwrites(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.VENUE_ASSIGNED)

        saved = await stage_machine.assign_venue(member.id, "Nelson", SESSION_AT)

        assert saved.assignment.venue == "Nelson"

    @pytest.mark.asyncio
    async def test_blank_venue(self, stage_machine, registrations, metrics) -> None:
        member = await _seed(registrations, RegistrationStage.PREFERENCE_SUBMITTED)

        with pytest.raises(ValueError):
            await stage_machine.assign_venue(member.id, "  ", SESSION_AT)

        assert _counted(metrics, operation="assign_venue", outcome="ValueError") == 1

    @pytest.mark.asyncio
    async def test_invited_member_cannot_be_assigned(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(registrations)

        with pytest.raises(InvalidTransitionError):
            await stage_machine.assign_venue(member.id, "Nelson", SESSION_AT)


class TestIssueTicket:
    @pytest.mark.asyncio
    async def test_issue(self, stage_machine, registrations, ledger, metrics) -> None:
        member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED)

        outcome = await stage_machine.issue_ticket(member.id, operator_id="ops")

        assert outcome.status is IssueStatus.ISSUED
        stored = await stage_machine.get(member.id)
        assert stored.stage is RegistrationStage.TICKET_ISSUED
        assert stored.ticket_reference == outcome.ticket.reference
        assert await ledger.get_active_ticket(member.id) == outcome.ticket
        assert _counted(metrics, operation="issue_ticket", outcome="ok") == 1

    @pytest.mark.asyncio
    async def test_second_issue_returns_same_ticket(
        self, stage_machine, registrations, metrics
    ) -> None:
        member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED)
        first = await stage_machine.issue_ticket(member.id)

        second = await stage_machine.issue_ticket(member.id)

        assert second.status is IssueStatus.ALREADY_ISSUED
        assert second.ticket.reference == first.ticket.reference
        assert _counted(metrics, operation="issue_ticket", outcome="noop") == 1

    @pytest.mark.asyncio
    async def test_concurrent_issues_produce_one_ticket(
        self, stage_machine, registrations, ledger_repository
    ) -> None:
        member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED)

        outcomes = await asyncio.gather(
            *[stage_machine.issue_ticket(member.id) for _ in range(5)]
        )

        assert {o.ticket.reference for o in outcomes} == {outcomes[0].ticket.reference}
        assert [o.status for o in outcomes].count(IssueStatus.ISSUED) == 1
        assert len(await ledger_repository.list_tickets()) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "stage",
        [
            RegistrationStage.INVITED,
            RegistrationStage.VENUE_ASSIGNED,
            RegistrationStage.NOT_ATTENDING,
        ],
    )
    async def test_requires_confirmed_attendance(
        self, stage_machine, registrations, stage, metrics
    ) -> None:
        member = await _seed(registrations, stage)

        with pytest.raises(NotAttendingError):
            await stage_machine.issue_ticket(member.id)

        assert _counted(metrics, operation="issue_ticket", outcome="NotAttendingError") == 1

    @pytest.mark.asyncio
    async def test_retry_after_failed_save_reuses_ledger_ticket(
        self, stage_machine, registrations, ledger_repository
    ) -> None:
        member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED)
        registrations.fail_next_saves(1)

        with pytest.raises(RuntimeError):
            await stage_machine.issue_ticket(member.id)
        orphan = await ledger_repository.get_active_ticket(member.id)
        assert orphan is not None

        outcome = await stage_machine.issue_ticket(member.id)

        assert outcome.status is IssueStatus.ISSUED
        assert outcome.ticket.reference == orphan.reference
        assert len(await ledger_repository.list_tickets()) == 1

    @pytest.mark.asyncio
    async def test_record_without_ledger_ticket_is_an_invariant_violation(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(registrations, RegistrationStage.TICKET_ISSUED)

        with pytest.raises(InvariantViolationError):
            await stage_machine.issue_ticket(member.id)


class TestCheckIn:
    @pytest.mark.asyncio
    async def test_check_in(self, stage_machine, registrations, fake_time_authority) -> None:
        member = await _ticketed(stage_machine, registrations)

        outcome = await stage_machine.check_in(
            member.id, CheckInMethod.MANUAL, "door-1", venue=" Hall A "
        )

        assert outcome.status is CheckInStatus.CHECKED_IN
        assert outcome.record.checked_in_at == fake_time_authority.now()
        stored = await stage_machine.get(member.id)
        assert stored.stage is RegistrationStage.CHECKED_IN
        assert stored.check_in_venue == "Hall A"
        assert stored.check_in_operator == "door-1"

    @pytest.mark.asyncio
    async def test_second_check_in_reports_original(
        self, stage_machine, registrations, ledger, fake_time_authority
    ) -> None:
        member = await _ticketed(stage_machine, registrations)
        first = await stage_machine.check_in(member.id, CheckInMethod.QR_SCAN, "door-1")
        fake_time_authority.advance(seconds=600)

        second = await stage_machine.check_in(member.id, CheckInMethod.MANUAL, "door-2")

        assert second.status is CheckInStatus.ALREADY_CHECKED_IN
        assert second.record == first.record
        records = await ledger.list_check_ins(member.id)
        assert len(records) == 2
        assert [r.duplicate for r in records] == [False, True]
        assert records[1].operator_id == "door-2"

    @pytest.mark.asyncio
    async def test_concurrent_scans_count_once(
        self, stage_machine, registrations, ledger
    ) -> None:
        member = await _ticketed(stage_machine, registrations)

        outcomes = await asyncio.gather(
            stage_machine.check_in(member.id, CheckInMethod.QR_SCAN, "door-1"),
            stage_machine.check_in(member.id, CheckInMethod.QR_SCAN, "door-2"),
        )

        statuses = sorted(o.status.value for o in outcomes)
        assert statuses == ["ALREADY_CHECKED_IN", "CHECKED_IN"]
        authoritative = [r for r in await ledger.list_check_ins(member.id) if r.authoritative]
        assert len(authoritative) == 1

    @pytest.mark.asyncio
    async def test_requires_ticket(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED)

        with pytest.raises(NoTicketError):
            await stage_machine.check_in(member.id, CheckInMethod.MANUAL, "door-1")

    @pytest.mark.asyncio
    async def test_refuses_ticket_voided_in_ledger(
        self, stage_machine, registrations, ledger_repository, fake_time_authority
    ) -> None:
        member = await _ticketed(stage_machine, registrations)
        await ledger_repository.void_ticket(member.ticket_reference, fake_time_authority.now())

        with pytest.raises(NoTicketError):
            await stage_machine.check_in(member.id, CheckInMethod.MANUAL, "door-1")

        assert await stage_machine.get(member.id) == member
        assert await ledger_repository.list_check_ins(member.id) == []

    @pytest.mark.asyncio
    async def test_requires_operator(self, stage_machine, registrations) -> None:
        member = await _ticketed(stage_machine, registrations)

        with pytest.raises(ValueError):
            await stage_machine.check_in(member.id, CheckInMethod.MANUAL, "  ")


class TestCheckInByTicket:
    @pytest.mark.asyncio
    async def test_scan(self, stage_machine, registrations) -> None:
        member = await _ticketed(stage_machine, registrations)

        outcome = await stage_machine.check_in_by_ticket(member.ticket_reference, "door-1")

        assert outcome.status is CheckInStatus.CHECKED_IN
        assert outcome.record.method is CheckInMethod.QR_SCAN
        assert outcome.record.member_id == member.id

    @pytest.mark.asyncio
    async def test_unknown_reference(self, stage_machine) -> None:
        with pytest.raises(MemberNotFoundError):
            await stage_machine.check_in_by_ticket("BMM-unknown", "door-1")

    @pytest.mark.asyncio
    async def test_voided_ticket_is_refused(self, stage_machine, registrations) -> None:
        member = await _ticketed(stage_machine, registrations)
        await stage_machine.override_stage(
            member.id,
            RegistrationStage.ATTENDANCE_CONFIRMED,
            operator_id="admin",
            justification="ticket sent to wrong address",
        )

        with pytest.raises(NoTicketError):
            await stage_machine.check_in_by_ticket(member.ticket_reference, "door-1")


class TestBulkCheckIn:
    @pytest.mark.asyncio
    async def test_mixed_batch(self, stage_machine, registrations) -> None:
        ready = await _ticketed(stage_machine, registrations)
        already = await _ticketed(stage_machine, registrations)
        await stage_machine.check_in(already.id, CheckInMethod.MANUAL, "door-1")
        unticketed = await _seed(registrations, RegistrationStage.VENUE_ASSIGNED)
        unknown = uuid4()

        results = await stage_machine.bulk_check_in(
            [ready.id, already.id, unticketed.id, unknown, ready.id],
            operator_id="ops",
            venue="Hall B",
        )

        assert [r.member_id for r in results] == [ready.id, already.id, unticketed.id, unknown]
        assert results[0].outcome.status is CheckInStatus.CHECKED_IN
        assert results[0].outcome.record.method is CheckInMethod.BULK
        assert results[1].outcome.status is CheckInStatus.ALREADY_CHECKED_IN
        assert results[2].outcome is None
        assert "ticket" in results[2].error
        assert results[3].error == "Registration not found"


class TestSpecialVoteAdministration:
    @pytest.mark.asyncio
    async def test_decline_request(self, stage_machine, registrations, fake_time_authority) -> None:
        member = await _seed(
            registrations,
            RegistrationStage.NOT_ATTENDING,
            special_vote_eligible=True,
            special_vote_requested=True,
            special_vote_status=SpecialVoteStatus.PENDING,
        )

        saved = await stage_machine.decide_special_vote(member.id, False, "returning-officer")

        assert saved.special_vote_status is SpecialVoteStatus.DECLINED
        assert saved.special_vote_decided_by == "returning-officer"
        assert saved.special_vote_decided_at == fake_time_authority.now()

    @pytest.mark.asyncio
    async def test_decide_without_request(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.NOT_ATTENDING)

        with pytest.raises(NotEligibleError):
            await stage_machine.decide_special_vote(member.id, True, "ops")

    @pytest.mark.asyncio
    async def test_grant_eligibility_is_audited(self, stage_machine, registrations) -> None:
        member = await _seed(
            registrations, RegistrationStage.NOT_ATTENDING, region=Region.NORTHERN
        )

        saved = await stage_machine.set_special_vote_eligibility(
            member.id, True, "admin", "Approved by branch secretary"
        )

        assert saved.special_vote_eligible
        audit = await registrations.list_audit(member.id)
        assert len(audit) == 1
        assert audit[0].action == "special_vote_eligibility"
        assert audit[0].justification == "Approved by branch secretary"

    @pytest.mark.asyncio
    async def test_revoke_withdraws_request(self, stage_machine, registrations) -> None:
        member = await _seed(
            registrations,
            RegistrationStage.NOT_ATTENDING,
            special_vote_eligible=True,
            special_vote_requested=True,
            special_vote_status=SpecialVoteStatus.PENDING,
        )

        saved = await stage_machine.set_special_vote_eligibility(
            member.id, False, "admin", "Duplicate membership"
        )

        assert not saved.special_vote_eligible
        assert not saved.special_vote_requested

    @pytest.mark.asyncio
    async def test_eligibility_only_for_non_attending(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED)

        with pytest.raises(InvalidTransitionError):
            await stage_machine.set_special_vote_eligibility(member.id, True, "admin", "why")

    @pytest.mark.asyncio
    async def test_eligibility_requires_justification(
        self, stage_machine, registrations
    ) -> None:
        member = await _seed(registrations, RegistrationStage.NOT_ATTENDING)

        with pytest.raises(ValueError):
            await stage_machine.set_special_vote_eligibility(member.id, True, "admin", " ")


class TestOverrideStage:
    @pytest.mark.asyncio
    async def test_ticketed_member_to_not_attending_voids_ticket(
        self, stage_machine, registrations, ledger_repository
    ) -> None:
        member = await _ticketed(stage_machine, registrations, region=Region.SOUTHERN)

        saved = await stage_machine.override_stage(
            member.id,
            RegistrationStage.NOT_ATTENDING,
            operator_id="admin",
            justification="Member phoned in sick",
            absence_reason="sick",
        )

        assert saved.stage is RegistrationStage.NOT_ATTENDING
        assert saved.ticket_reference is None
        assert saved.special_vote_eligible
        ticket = await ledger_repository.get_ticket(member.ticket_reference)
        assert ticket is not None
        assert not ticket.active
        audit = await registrations.list_audit(member.id)
        assert (audit[0].from_stage, audit[0].to_stage) == ("TICKET_ISSUED", "NOT_ATTENDING")

    @pytest.mark.asyncio
    async def test_undo_check_in_keeps_ticket(
        self, stage_machine, registrations, ledger
    ) -> None:
        member = await _ticketed(stage_machine, registrations)
        await stage_machine.check_in(member.id, CheckInMethod.MANUAL, "door-1")

        saved = await stage_machine.override_stage(
            member.id, RegistrationStage.TICKET_ISSUED, "admin", "Scanned wrong member"
        )

        assert saved.stage is RegistrationStage.TICKET_ISSUED
        assert saved.ticket_reference == member.ticket_reference
        assert not saved.checked_in
        assert await ledger.get_authoritative_check_in(member.ticket_reference) is None

        again = await stage_machine.check_in(member.id, CheckInMethod.MANUAL, "door-2")
        assert again.status is CheckInStatus.CHECKED_IN

    @pytest.mark.asyncio
    async def test_failed_save_leaves_ticket_active(
        self, stage_machine, registrations, ledger_repository
    ) -> None:
        member = await _ticketed(stage_machine, registrations, region=Region.SOUTHERN)
        registrations.fail_next_saves(1)

        with pytest.raises(RuntimeError):
            await stage_machine.override_stage(
                member.id,
                RegistrationStage.NOT_ATTENDING,
                operator_id="admin",
                justification="Member phoned in sick",
                absence_reason="sick",
            )

        assert (await stage_machine.get(member.id)).stage is RegistrationStage.TICKET_ISSUED
        ticket = await ledger_repository.get_ticket(member.ticket_reference)
        assert ticket is not None
        assert ticket.active
        assert await registrations.list_audit(member.id) == []

        outcome = await stage_machine.check_in(member.id, CheckInMethod.MANUAL, "door-1")
        assert outcome.status is CheckInStatus.CHECKED_IN

    @pytest.mark.asyncio
    async def test_repeat_override_voids_ticket_left_by_failed_void(
        self, stage_machine, registrations, ledger_repository, monkeypatch
    ) -> None:
        member = await _ticketed(stage_machine, registrations)
        real_void = ledger_repository.void_ticket
        calls = 0

        async def flaky_void(reference, voided_at):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("ledger unavailable")
            return await real_void(reference, voided_at)

        monkeypatch.setattr(ledger_repository, "void_ticket", flaky_void)

        with pytest.raises(RuntimeError):
            await stage_machine.override_stage(
                member.id, RegistrationStage.ATTENDANCE_CONFIRMED, "admin", "Reissue later"
            )
        assert (await stage_machine.get(member.id)).stage is RegistrationStage.ATTENDANCE_CONFIRMED
        with pytest.raises(NoTicketError):
            await stage_machine.check_in_by_ticket(member.ticket_reference, "door-1")

        await stage_machine.override_stage(
            member.id, RegistrationStage.ATTENDANCE_CONFIRMED, "admin", "Reissue later"
        )

        assert await ledger_repository.get_active_ticket(member.id) is None
        reissued = await stage_machine.issue_ticket(member.id, operator_id="ops")
        assert reissued.ticket.reference != member.ticket_reference

    @pytest.mark.asyncio
    async def test_cannot_fabricate_ticket(self, stage_machine, registrations) -> None:
        member = await _seed(registrations, RegistrationStage.ATTENDANCE_CONFIRMED)

        with pytest.raises(InvariantViolationError):
            await stage_machine.override_stage(
                member.id, RegistrationStage.TICKET_ISSUED, "admin", "skip ticketing"
            )

        assert await stage_machine.get(member.id) == member
        assert await registrations.list_audit(member.id) == []

    @pytest.mark.asyncio
    async def test_requires_justification(self, stage_machine, registrations) -> None:
        member = await _seed(registrations)

        with pytest.raises(ValueError):
            await stage_machine.override_stage(
                member.id, RegistrationStage.INVITED, "admin", ""
            )


class TestDefaults:
    @pytest.mark.asyncio
    async def test_runs_without_metrics_or_shared_locks(self) -> None:
        registrations = RegistrationRepositoryStub()
        service = StageMachineService(
            registrations,
            TicketLedgerService(TicketLedgerRepositoryStub()),
            FakeTimeAuthority(),
        )
        member = await registrations.add(make_registration())

        saved = await service.submit_preference(member.access_token, attendance_intent=None)

        assert saved.version == 1
