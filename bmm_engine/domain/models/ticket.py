"""Ticket ledger domain models.

The ledger is the authoritative record of issued tickets and check-ins.
Records are append-only: a ticket is never deleted (an override voids it)
and every check-in attempt is kept, duplicates included, so the audit trail
can answer "who scanned this ticket, where, and when".

Constraints:
- At most one active (non-voided) ticket per member
- At most one authoritative check-in per active ticket
- Re-delivery of a ticket is a TicketDelivery event, never a new Ticket
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def new_ticket_reference() -> str:
    """Generate an opaque, unguessable ticket reference."""
    return f"BMM-{secrets.token_urlsafe(12)}"


class CheckInMethod(Enum):
    """How a member's arrival was recorded.

    Methods:
        QR_SCAN: Ticket QR code scanned at the door
        MANUAL: Operator looked the member up and checked them in
        BULK: Operator checked in a batch of members
    """

    QR_SCAN = "QR_SCAN"
    MANUAL = "MANUAL"
    BULK = "BULK"


class IssueStatus(Enum):
    """Outcome of a ticket issuance request."""

    ISSUED = "ISSUED"
    ALREADY_ISSUED = "ALREADY_ISSUED"


class CheckInStatus(Enum):
    """Outcome of a check-in request."""

    CHECKED_IN = "CHECKED_IN"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"


@dataclass(frozen=True, eq=True)
class Ticket:
    """An entry ticket issued to a confirmed attendee.

    Attributes:
        reference: Opaque ticket reference (encoded in the QR code).
        member_id: Registration the ticket belongs to.
        event_id: Event the ticket admits to.
        issued_at: When the ticket was issued.
        issued_by: Operator who issued it (None for automated issuance).
        voided_at: When an override voided the ticket (None while active).
    """

    reference: str
    member_id: UUID
    event_id: UUID
    issued_at: datetime = field(default_factory=_utc_now)
    issued_by: str | None = None
    voided_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate ticket fields."""
        if not self.reference:
            raise ValueError("Ticket reference must not be empty")

    @property
    def active(self) -> bool:
        """True while the ticket has not been voided."""
        return self.voided_at is None


@dataclass(frozen=True, eq=True)
class CheckInRecord:
    """One recorded check-in attempt.

    The first non-duplicate, non-voided record for an active ticket is the
    authoritative check-in. Later attempts are kept with duplicate=True.
    """

    ticket_reference: str
    member_id: UUID
    checked_in_at: datetime
    method: CheckInMethod
    operator_id: str
    venue: str | None = None
    duplicate: bool = False
    voided: bool = False
    id: UUID = field(default_factory=uuid4)

    @property
    def authoritative(self) -> bool:
        """True for the record that counts as the member's check-in."""
        return not self.duplicate and not self.voided


@dataclass(frozen=True, eq=True)
class TicketDelivery:
    """A (re-)delivery of an existing ticket to the member.

    Attributes:
        ticket_reference: Ticket that was delivered.
        member_id: Recipient registration.
        channel: Channel value used ("EMAIL" or "SMS").
        campaign_id: Campaign that delivered it.
        delivered_at: When the notifier accepted the message.
    """

    ticket_reference: str
    member_id: UUID
    channel: str
    campaign_id: UUID
    delivered_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class TicketIssueOutcome:
    """Result of issue_ticket: the ticket plus whether it was newly issued."""

    ticket: Ticket
    status: IssueStatus


@dataclass(frozen=True, eq=True)
class CheckInOutcome:
    """Result of check_in: the authoritative record and the call's status."""

    record: CheckInRecord
    status: CheckInStatus


@dataclass(frozen=True, eq=True)
class OverrideAuditEntry:
    """Audit trail entry for a privileged administrative action.

    Attributes:
        member_id: Registration that was changed.
        action: "stage_override" or "special_vote_eligibility".
        operator_id: Operator who performed the action.
        justification: Required free-text justification.
        from_stage / to_stage: Stage values before and after.
        recorded_at: When the action was applied.
    """

    member_id: UUID
    action: str
    operator_id: str
    justification: str
    from_stage: str
    to_stage: str
    recorded_at: datetime = field(default_factory=_utc_now)
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        """Validate audit fields."""
        if not self.operator_id.strip():
            raise ValueError("Audit entries require an operator")
        if not self.justification.strip():
            raise ValueError("Audit entries require a justification")
