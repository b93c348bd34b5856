"""Integration tests for a member's path through the registration engine.

These wire the real services over the in-memory stubs and drive members
from invitation to check-in, including the special vote branch and a
ticket campaign.
"""

from datetime import datetime, timezone

import pytest

from bmm_engine.domain.errors import NotEligibleError
from bmm_engine.domain.models.campaign import (
    Campaign,
    CampaignKind,
    Channel,
    MessageTemplate,
)
from bmm_engine.domain.models.region import Region
from bmm_engine.domain.models.registration import RegistrationStage, SpecialVoteStatus
from bmm_engine.domain.models.segment import SegmentCriteria
from bmm_engine.domain.models.ticket import CheckInMethod, CheckInStatus
from tests.helpers import make_registration

SESSION_AT = datetime(2026, 3, 12, 10, 30, tzinfo=timezone.utc)


async def _assigned(stage_machine, registrations, region: Region, **fields):
    record = await registrations.add(make_registration(region=region, **fields))
    await stage_machine.submit_preference(
        record.access_token, attendance_intent=None, venue_preferences=["Dunedin"]
    )
    await stage_machine.assign_venue(record.id, "Dunedin", SESSION_AT, operator_id="ops")
    return record


class TestSpecialVoteBranch:
    @pytest.mark.asyncio
    async def test_southern_sick_member_gets_special_vote(
        self, stage_machine, registrations
    ) -> None:
        record = await _assigned(stage_machine, registrations, Region.SOUTHERN)

        declined = await stage_machine.confirm_attendance(
            record.access_token, attending=False, absence_reason="sick"
        )
        requested = await stage_machine.request_special_vote(
            record.access_token, wants_special_vote=True
        )
        approved = await stage_machine.decide_special_vote(
            record.id, approved=True, operator_id="returning-officer"
        )

        assert declined.stage is RegistrationStage.NOT_ATTENDING
        assert declined.special_vote_eligible
        assert requested.special_vote_status is SpecialVoteStatus.PENDING
        assert approved.special_vote_status is SpecialVoteStatus.APPROVED

    @pytest.mark.asyncio
    async def test_southern_custom_reason_is_not_eligible(
        self, stage_machine, registrations
    ) -> None:
        record = await _assigned(stage_machine, registrations, Region.SOUTHERN)

        declined = await stage_machine.confirm_attendance(
            record.access_token,
            attending=False,
            absence_reason="custom",
            absence_detail="Family wedding",
        )

        assert not declined.special_vote_eligible
        with pytest.raises(NotEligibleError):
            await stage_machine.request_special_vote(record.access_token, True)

    @pytest.mark.asyncio
    async def test_northern_distance_is_not_eligible(
        self, stage_machine, registrations
    ) -> None:
        record = await _assigned(stage_machine, registrations, Region.NORTHERN)

        declined = await stage_machine.confirm_attendance(
            record.access_token, attending=False, absence_reason="distance"
        )

        assert not declined.special_vote_eligible
        with pytest.raises(NotEligibleError):
            await stage_machine.request_special_vote(record.access_token, True)


class TestAttendingLifecycle:
    @pytest.mark.asyncio
    async def test_invitation_to_check_in(
        self,
        stage_machine,
        registrations,
        dispatcher,
        notifier,
        ledger,
        report_service,
        fake_time_authority,
    ) -> None:
        attending = await _assigned(
            stage_machine, registrations, Region.CENTRAL, name="Hemi Walker",
            email="hemi@example.org",
        )
        sms_only = await _assigned(
            stage_machine, registrations, Region.CENTRAL, email=None, mobile="0215550101",
        )
        absent = await _assigned(stage_machine, registrations, Region.CENTRAL)

        for member in (attending, sms_only):
            await stage_machine.confirm_attendance(member.access_token, attending=True)
            await stage_machine.issue_ticket(member.id, operator_id="ops")
        await stage_machine.confirm_attendance(
            absent.access_token, attending=False, absence_reason="work"
        )

        campaign = Campaign(
            name="Your ticket",
            template=MessageTemplate(
                subject="Your BMM ticket",
                body="Kia ora {{firstName}}, your ticket: {{ticketUrl}}",
            ),
            criteria=SegmentCriteria(stages=frozenset({RegistrationStage.TICKET_ISSUED})),
            kind=CampaignKind.TICKET,
        )
        report = await dispatcher.dispatch(campaign)

        assert (report.total, report.sent, report.failed) == (2, 2, 0)
        [email] = notifier.sent_to("hemi@example.org")
        assert email.channel is Channel.EMAIL
        assert email.message.body.startswith("Kia ora Hemi, your ticket: https://events.example.org/")
        [sms] = notifier.sent_to("0215550101")
        assert sms.channel is Channel.SMS
        assert sms.message.subject is None

        holder = await registrations.get(attending.id)
        assert len(await ledger.list_deliveries(holder.ticket_reference)) == 1

        fake_time_authority.advance(seconds=3600)
        first = await stage_machine.check_in_by_ticket(
            holder.ticket_reference, operator_id="door-1", venue="Dunedin"
        )
        again = await stage_machine.check_in(
            attending.id, CheckInMethod.MANUAL, operator_id="door-2"
        )

        assert first.status is CheckInStatus.CHECKED_IN
        assert again.status is CheckInStatus.ALREADY_CHECKED_IN
        assert again.record.operator_id == "door-1"

        summary = await report_service.summarize()
        assert summary.total == 3
        assert summary.tickets_issued == 2
        assert summary.checked_in == 1
        assert summary.not_attending == 1
        assert summary.check_ins_by_venue == {"Dunedin": 1}
        assert summary.duplicate_check_in_attempts == 1
