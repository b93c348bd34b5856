"""Campaign domain models.

A campaign is one batched outbound communication: a message template sent
to every registration selected by a segment. Delivery is tracked per
(campaign, member) job so that a campaign can be resumed without
re-sending to members who already received it.

Job lifecycle:
    QUEUED -> SENT (notifier accepted the message)
    QUEUED -> FAILED (terminal or exhausted retryable failure, resumable)
    QUEUED -> SKIPPED (no usable channel; never re-queued)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from bmm_engine.domain.models.segment import SegmentCriteria


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class CampaignKind(Enum):
    """Campaign purpose. TICKET campaigns deliver each member's ticket link."""

    GENERAL = "GENERAL"
    TICKET = "TICKET"


class Channel(Enum):
    """Outbound delivery channel."""

    EMAIL = "EMAIL"
    SMS = "SMS"


class JobStatus(Enum):
    """Per-recipient delivery status."""

    QUEUED = "QUEUED"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"

    @property
    def final(self) -> bool:
        """True for statuses a resumed dispatch will not re-queue."""
        return self in (JobStatus.SENT, JobStatus.SKIPPED)


@dataclass(frozen=True, eq=True)
class MessageTemplate:
    """Message content with {{placeholder}} variables.

    The subject is used for email only; SMS messages carry the body alone.
    """

    body: str
    subject: str | None = None

    def __post_init__(self) -> None:
        """Validate template fields."""
        if not self.body.strip():
            raise ValueError("Template body must not be blank")


@dataclass(frozen=True, eq=True)
class Campaign:
    """A batched outbound communication.

    Attributes:
        name: Display name for operators.
        template: Message template.
        criteria: Segment selecting the recipients.
        kind: GENERAL or TICKET.
        channel: Restrict delivery to one channel (None picks per recipient).
        created_by: Operator who created the campaign.
        id: Campaign identifier (the resumption key together with member id).
    """

    name: str
    template: MessageTemplate
    criteria: SegmentCriteria = field(default_factory=SegmentCriteria)
    kind: CampaignKind = CampaignKind.GENERAL
    channel: Channel | None = None
    created_by: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class RenderedMessage:
    """Fully resolved content for one recipient."""

    body: str
    subject: str | None = None


@dataclass(frozen=True, eq=True)
class CampaignJob:
    """Delivery state of one (campaign, member) pair.

    Attributes:
        campaign_id / member_id: Job key.
        status: Current job status.
        channel: Channel chosen for the recipient (None when skipped).
        attempts: Notifier send attempts made so far. Ticket renderer
            retries are not counted.
        error: Failure or skip reason.
        retryable: Whether the last failure was transient.
        updated_at: When the status was last recorded.
    """

    campaign_id: UUID
    member_id: UUID
    status: JobStatus = JobStatus.QUEUED
    channel: Channel | None = None
    attempts: int = 0
    error: str | None = None
    retryable: bool = False
    updated_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class JobFailure:
    """A failed job as surfaced in a campaign report."""

    member_id: UUID
    error: str
    retryable: bool


@dataclass(frozen=True, eq=True)
class CampaignReport:
    """Aggregate progress of a campaign.

    Attributes:
        total: Distinct recipients known for the campaign.
        queued: Jobs not yet resolved.
        sent / failed / skipped: Jobs in each final status.
        failures: Per-member failure details.
    """

    campaign_id: UUID
    total: int = 0
    queued: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    failures: tuple[JobFailure, ...] = ()

    @classmethod
    def from_jobs(cls, campaign_id: UUID, jobs: list[CampaignJob]) -> CampaignReport:
        """Aggregate a report from the current job states."""
        counts = {status: 0 for status in JobStatus}
        for job in jobs:
            counts[job.status] += 1
        failures = tuple(
            JobFailure(
                member_id=job.member_id,
                error=job.error or "unknown error",
                retryable=job.retryable,
            )
            for job in jobs
            if job.status is JobStatus.FAILED
        )
        return cls(
            campaign_id=campaign_id,
            total=len(jobs),
            queued=counts[JobStatus.QUEUED],
            sent=counts[JobStatus.SENT],
            failed=counts[JobStatus.FAILED],
            skipped=counts[JobStatus.SKIPPED],
            failures=failures,
        )


@dataclass(frozen=True, eq=True)
class DeliveryReceipt:
    """Notifier acknowledgement of an accepted message."""

    channel: Channel
    provider_message_id: str | None = None
    accepted_at: datetime = field(default_factory=_utc_now)
