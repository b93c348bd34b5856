"""Unit tests for campaign and ticket ledger models."""

from uuid import uuid4

import pytest

from bmm_engine.domain.models.campaign import (
    CampaignJob,
    CampaignReport,
    Channel,
    JobStatus,
)
from bmm_engine.domain.models.ticket import (
    CheckInMethod,
    CheckInRecord,
    OverrideAuditEntry,
    Ticket,
    new_ticket_reference,
)
from tests.helpers.registrations import BASE_TIME


class TestJobStatus:
    @pytest.mark.parametrize(
        ("status", "final"),
        [
            (JobStatus.QUEUED, False),
            (JobStatus.FAILED, False),
            (JobStatus.SENT, True),
            (JobStatus.SKIPPED, True),
        ],
    )
    def test_final_statuses(self, status: JobStatus, final: bool) -> None:
        assert status.final is final


class TestCampaignReport:
    def test_from_jobs_counts_each_status(self) -> None:
        campaign_id = uuid4()
        failed_member = uuid4()
        jobs = [
            CampaignJob(campaign_id, uuid4(), JobStatus.SENT, Channel.EMAIL, attempts=1),
            CampaignJob(campaign_id, uuid4(), JobStatus.SENT, Channel.SMS, attempts=2),
            CampaignJob(campaign_id, uuid4(), JobStatus.SKIPPED, error="no channel"),
            CampaignJob(
                campaign_id,
                failed_member,
                JobStatus.FAILED,
                Channel.EMAIL,
                attempts=1,
                error="mailbox rejected",
                retryable=False,
            ),
            CampaignJob(campaign_id, uuid4()),
        ]

        report = CampaignReport.from_jobs(campaign_id, jobs)

        assert (report.total, report.sent, report.failed, report.skipped, report.queued) == (
            5,
            2,
            1,
            1,
            1,
        )
        assert len(report.failures) == 1
        assert report.failures[0].member_id == failed_member
        assert report.failures[0].error == "mailbox rejected"
        assert report.failures[0].retryable is False

    def test_empty_campaign(self) -> None:
        report = CampaignReport.from_jobs(uuid4(), [])
        assert report.total == 0
        assert report.failures == ()


class TestTicketModels:
    def test_references_are_opaque_and_unique(self) -> None:
        refs = {new_ticket_reference() for _ in range(100)}
        assert len(refs) == 100
        assert all(ref.startswith("BMM-") for ref in refs)

    def test_ticket_requires_reference(self) -> None:
        with pytest.raises(ValueError):
            Ticket(reference="", member_id=uuid4(), event_id=uuid4())

    def test_voided_ticket_is_inactive(self) -> None:
        ticket = Ticket(reference="BMM-x", member_id=uuid4(), event_id=uuid4())
        assert ticket.active
        assert not Ticket(
            reference="BMM-x", member_id=uuid4(), event_id=uuid4(), voided_at=BASE_TIME
        ).active

    def test_duplicate_check_in_is_not_authoritative(self) -> None:
        record = CheckInRecord(
            ticket_reference="BMM-x",
            member_id=uuid4(),
            checked_in_at=BASE_TIME,
            method=CheckInMethod.QR_SCAN,
            operator_id="door-1",
        )
        assert record.authoritative
        assert not CheckInRecord(
            ticket_reference="BMM-x",
            member_id=uuid4(),
            checked_in_at=BASE_TIME,
            method=CheckInMethod.QR_SCAN,
            operator_id="door-1",
            duplicate=True,
        ).authoritative

    @pytest.mark.parametrize(("operator", "justification"), [(" ", "fix"), ("ops", "  ")])
    def test_audit_entry_requires_operator_and_justification(
        self, operator: str, justification: str
    ) -> None:
        with pytest.raises(ValueError):
            OverrideAuditEntry(
                member_id=uuid4(),
                action="stage_override",
                operator_id=operator,
                justification=justification,
                from_stage="INVITED",
                to_stage="NOT_ATTENDING",
            )
