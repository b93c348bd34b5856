"""Read-only registration reporting.

Aggregates registration records and ledger check-ins into the summary an
operator sees on the meeting dashboard. Nothing here writes.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from uuid import UUID

from bmm_engine.application.ports.registration_repository import (
    RegistrationRepositoryProtocol,
)
from bmm_engine.application.services.base import LoggingMixin
from bmm_engine.application.services.ticket_ledger_service import TicketLedgerService
from bmm_engine.domain.models.registration import (
    AttendanceDecision,
    RegistrationStage,
    SpecialVoteStatus,
)


@dataclass(frozen=True, eq=True)
class RegistrationSummary:
    """Aggregate counts for one event (or every event)."""

    total: int = 0
    registered: int = 0
    by_stage: dict[str, int] = field(default_factory=dict)
    by_region: dict[str, int] = field(default_factory=dict)
    attending: int = 0
    not_attending: int = 0
    undecided: int = 0
    special_vote_eligible: int = 0
    special_vote_requested: int = 0
    special_vote_by_status: dict[str, int] = field(default_factory=dict)
    tickets_issued: int = 0
    checked_in: int = 0
    check_ins_by_venue: dict[str, int] = field(default_factory=dict)
    duplicate_check_in_attempts: int = 0


class RegistrationReportService(LoggingMixin):
    """Builds registration summaries."""

    def __init__(
        self,
        registrations: RegistrationRepositoryProtocol,
        ledger: TicketLedgerService,
    ) -> None:
        self._registrations = registrations
        self._ledger = ledger
        self._init_logger(component="reporting")

    async def summarize(self, event_id: UUID | None = None) -> RegistrationSummary:
        """Summarise registrations, optionally for a single event."""
        if event_id is not None:
            records = await self._registrations.list_by_event(event_id)
        else:
            records = await self._registrations.list_all()
        member_ids = {r.id for r in records}

        stages = Counter(r.stage.value for r in records)
        regions = Counter(r.region.value for r in records)
        attendance = Counter(r.attendance for r in records)
        vote_status = Counter(
            r.special_vote_status.value
            for r in records
            if r.special_vote_status is not SpecialVoteStatus.NOT_APPLICABLE
        )
        venues = Counter(
            r.check_in_venue or "unspecified" for r in records if r.checked_in
        )

        check_ins = await self._ledger.list_check_ins()
        duplicates = sum(
            1 for c in check_ins if c.duplicate and c.member_id in member_ids
        )

        summary = RegistrationSummary(
            total=len(records),
            registered=sum(1 for r in records if r.registered),
            by_stage={stage.value: stages.get(stage.value, 0) for stage in RegistrationStage},
            by_region=dict(regions),
            attending=attendance.get(AttendanceDecision.ATTENDING, 0),
            not_attending=attendance.get(AttendanceDecision.NOT_ATTENDING, 0),
            undecided=attendance.get(AttendanceDecision.UNDECIDED, 0),
            special_vote_eligible=sum(1 for r in records if r.special_vote_eligible),
            special_vote_requested=sum(1 for r in records if r.special_vote_requested),
            special_vote_by_status=dict(vote_status),
            tickets_issued=sum(1 for r in records if r.ticket_issued),
            checked_in=sum(1 for r in records if r.checked_in),
            check_ins_by_venue=dict(venues),
            duplicate_check_in_attempts=duplicates,
        )
        self._log_operation(
            "summarize", event_id=str(event_id) if event_id else None
        ).debug("registration_summary_built", total=summary.total)
        return summary
