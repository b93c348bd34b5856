"""Stage machine service: every operation that changes a registration.

Each mutating operation:
1. Resolves the member (token or id). Unknown members raise
   MemberNotFoundError without saying which identifier failed.
2. Takes the member's lock, re-reads the record and checks the transition
   table.
3. Writes the ticket ledger first when issuing or checking in, then saves
   the new record with an optimistic version check. An override saves the
   record first and voids ledger entries after.

A failure before the save leaves the stored record untouched, and every
ledger write is one a retry recognises. Idempotent repeats (second ticket
issuance, second check-in) return informational statuses instead of
raising.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from bmm_engine.application.ports.engine_metrics import EngineMetricsProtocol
from bmm_engine.application.ports.registration_repository import (
    RegistrationRepositoryProtocol,
)
from bmm_engine.application.ports.time_authority import TimeAuthorityProtocol
from bmm_engine.application.services.base import LoggingMixin, token_prefix
from bmm_engine.application.services.locks import LockRegistry
from bmm_engine.application.services.ticket_ledger_service import TicketLedgerService
from bmm_engine.domain.errors import (
    InvalidTransitionError,
    InvariantViolationError,
    MemberNotFoundError,
    MissingReasonError,
    NoTicketError,
    NotAttendingError,
    NotEligibleError,
)
from bmm_engine.domain.exceptions import RegistrationEngineError
from bmm_engine.domain.models.registration import (
    AttendanceDecision,
    MemberRegistration,
    PreferenceData,
    RegistrationStage,
    SpecialVoteStatus,
    VenueAssignment,
    cleared_special_vote,
)
from bmm_engine.domain.models.ticket import (
    CheckInMethod,
    CheckInOutcome,
    CheckInStatus,
    IssueStatus,
    OverrideAuditEntry,
    TicketIssueOutcome,
)
from bmm_engine.domain.services.eligibility import (
    evaluate_special_vote_eligibility,
    normalize_reason_code,
)

ADMIN_GRANTED_RATIONALE = "Special vote eligibility granted by an administrator."
ADMIN_REVOKED_RATIONALE = "Special vote eligibility revoked by an administrator."


@dataclass(frozen=True, eq=True)
class BulkCheckInResult:
    """Per-member result of a bulk check-in.

    Exactly one of outcome and error is set.
    """

    member_id: UUID
    outcome: CheckInOutcome | None = None
    error: str | None = None


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    stripped = text.strip()
    return stripped or None


def _require_text(value: str | None, field_name: str) -> str:
    cleaned = _clean(value)
    if cleaned is None:
        raise ValueError(f"{field_name} must not be blank")
    return cleaned


class StageMachineService(LoggingMixin):
    """Applies registration lifecycle operations.

    Attributes:
        _registrations: Registration record storage.
        _ledger: Ticket ledger service.
        _time: Time authority for every recorded timestamp.
        _locks: Per-member lock registry.
        _auto_approve: Approve special vote requests on submission.
    """

    def __init__(
        self,
        registrations: RegistrationRepositoryProtocol,
        ledger: TicketLedgerService,
        time_authority: TimeAuthorityProtocol,
        locks: LockRegistry | None = None,
        auto_approve_special_votes: bool = False,
        metrics: EngineMetricsProtocol | None = None,
    ) -> None:
        self._registrations = registrations
        self._ledger = ledger
        self._time = time_authority
        self._locks = locks or LockRegistry()
        self._auto_approve = auto_approve_special_votes
        self._metrics = metrics
        self._init_logger(component="registration")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, member_id: UUID) -> MemberRegistration:
        """Return a registration by id.

        Raises:
            MemberNotFoundError: If no such registration exists.
        """
        record = await self._registrations.get(member_id)
        if record is None:
            raise MemberNotFoundError()
        return record

    async def get_by_token(self, token: str) -> MemberRegistration:
        """Return the registration a self-service token belongs to.

        Raises:
            MemberNotFoundError: If the token is blank or unknown.
        """
        if not token or not token.strip():
            raise MemberNotFoundError()
        record = await self._registrations.get_by_token(token.strip())
        if record is None:
            raise MemberNotFoundError()
        return record

    # ------------------------------------------------------------------
    # Member self-service
    # ------------------------------------------------------------------

    async def submit_preference(
        self,
        token: str,
        attendance_intent: bool | None,
        venue_preferences: Sequence[str] = (),
        time_preferences: Sequence[str] = (),
        comments: str | None = None,
    ) -> MemberRegistration:
        """Record the member's venue and time preferences.

        Valid from INVITED and PREFERENCE_SUBMITTED. A re-submission
        overwrites the earlier preferences.

        Raises:
            MemberNotFoundError: If the token is unknown.
            InvalidTransitionError: If a venue has already been assigned.
        """
        operation = "submit_preference"
        member = await self.get_by_token(token)
        log = self._log_operation(
            operation, member_id=str(member.id), token=token_prefix(token)
        )

        with self._metered(operation):
            async with self._locks.hold(member.id):
                current = await self.get(member.id)
                now = self._time.now()
                preference = PreferenceData(
                    attendance_intent=attendance_intent,
                    venues=tuple(v.strip() for v in venue_preferences if v.strip()),
                    times=tuple(t.strip() for t in time_preferences if t.strip()),
                    comments=_clean(comments),
                    submitted_at=now,
                )
                updated = current.advance(
                    operation,
                    RegistrationStage.PREFERENCE_SUBMITTED,
                    now,
                    preference=preference,
                )
                saved = await self._save(updated, current.version)

        log.info(
            "preference_submitted",
            resubmission=current.stage is RegistrationStage.PREFERENCE_SUBMITTED,
            venues=len(preference.venues),
        )
        return saved

    async def confirm_attendance(
        self,
        token: str,
        attending: bool,
        absence_reason: str | None = None,
        absence_detail: str | None = None,
    ) -> MemberRegistration:
        """Record the member's attendance decision.

        Valid from VENUE_ASSIGNED, and from ATTENDANCE_CONFIRMED or
        NOT_ATTENDING as a correction while no ticket exists. Declining
        requires a reason and evaluates special vote eligibility. A prior
        special vote request survives a correction only while the member
        stays eligible.

        Raises:
            MemberNotFoundError: If the token is unknown.
            InvalidTransitionError: If the stage does not allow a decision.
            MissingReasonError: If declining without a reason.
        """
        operation = "confirm_attendance"
        member = await self.get_by_token(token)
        log = self._log_operation(
            operation, member_id=str(member.id), token=token_prefix(token)
        )
        target = (
            RegistrationStage.ATTENDANCE_CONFIRMED
            if attending
            else RegistrationStage.NOT_ATTENDING
        )

        with self._metered(operation):
            async with self._locks.hold(member.id):
                current = await self.get(member.id)
                self._check_transition(operation, current, target)
                now = self._time.now()

                if attending:
                    changes: dict[str, object] = {
                        "attendance": AttendanceDecision.ATTENDING,
                        "absence_reason": None,
                        "absence_detail": None,
                        **cleared_special_vote(),
                    }
                else:
                    reason = normalize_reason_code(absence_reason)
                    if reason is None:
                        raise MissingReasonError()
                    decision = evaluate_special_vote_eligibility(current.region, reason)
                    keep_request = (
                        decision.eligible
                        and current.stage is RegistrationStage.NOT_ATTENDING
                    )
                    changes = {} if keep_request else cleared_special_vote()
                    changes.update(
                        attendance=AttendanceDecision.NOT_ATTENDING,
                        absence_reason=reason,
                        absence_detail=_clean(absence_detail),
                        special_vote_eligible=decision.eligible,
                        special_vote_rationale=decision.rationale or None,
                    )

                updated = current.advance(
                    operation, target, now, attendance_decided_at=now, **changes
                )
                saved = await self._save(updated, current.version)

        log.info(
            "attendance_confirmed" if attending else "attendance_declined",
            correction=current.stage is not RegistrationStage.VENUE_ASSIGNED,
            absence_reason=saved.absence_reason,
            special_vote_eligible=saved.special_vote_eligible,
        )
        return saved

    async def request_special_vote(
        self,
        token: str,
        wants_special_vote: bool,
        application_reason: str | None = None,
    ) -> MemberRegistration:
        """Apply for (or withdraw) a special vote.

        Only a non-attending, eligible member may request. The stage is
        unchanged. A new request is PENDING unless auto-approval is on.

        Raises:
            MemberNotFoundError: If the token is unknown.
            NotEligibleError: If the member is not attending-and-eligible.
        """
        operation = "request_special_vote"
        member = await self.get_by_token(token)
        log = self._log_operation(
            operation, member_id=str(member.id), token=token_prefix(token)
        )

        with self._metered(operation):
            async with self._locks.hold(member.id):
                current = await self.get(member.id)
                if (
                    current.stage is not RegistrationStage.NOT_ATTENDING
                    or not current.special_vote_eligible
                ):
                    raise NotEligibleError()
                now = self._time.now()

                if not wants_special_vote:
                    changes = cleared_special_vote(keep_eligibility=True)
                elif current.special_vote_requested:
                    # Repeat request: update the reason, keep any decision
                    changes = {"special_vote_reason": _clean(application_reason)}
                elif self._auto_approve:
                    changes = {
                        "special_vote_requested": True,
                        "special_vote_reason": _clean(application_reason),
                        "special_vote_status": SpecialVoteStatus.APPROVED,
                        "special_vote_requested_at": now,
                        "special_vote_decided_at": now,
                    }
                else:
                    changes = {
                        "special_vote_requested": True,
                        "special_vote_reason": _clean(application_reason),
                        "special_vote_status": SpecialVoteStatus.PENDING,
                        "special_vote_requested_at": now,
                    }

                updated = current.with_changes(now, **changes)
                saved = await self._save(updated, current.version)

        log.info(
            "special_vote_requested" if wants_special_vote else "special_vote_withdrawn",
            status=saved.special_vote_status.value,
        )
        return saved

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def assign_venue(
        self,
        member_id: UUID,
        venue: str,
        session_at: datetime,
        operator_id: str | None = None,
    ) -> MemberRegistration:
        """Record the venue and session allocated to a member.

        Valid from PREFERENCE_SUBMITTED and VENUE_ASSIGNED (re-assignment
        overwrites).

        Raises:
            MemberNotFoundError: If the member is unknown.
            InvalidTransitionError: If the stage does not allow assignment.
            ValueError: If venue is blank.
        """
        operation = "assign_venue"
        log = self._log_operation(operation, member_id=str(member_id), operator=operator_id)

        with self._metered(operation):
            async with self._locks.hold(member_id):
                current = await self.get(member_id)
                now = self._time.now()
                self._check_transition(operation, current, RegistrationStage.VENUE_ASSIGNED)
                assignment = VenueAssignment(
                    venue=venue.strip(),
                    session_at=session_at,
                    assigned_by=operator_id,
                    assigned_at=now,
                )
                updated = current.advance(
                    operation,
                    RegistrationStage.VENUE_ASSIGNED,
                    now,
                    assignment=assignment,
                )
                saved = await self._save(updated, current.version)

        log.info(
            "venue_assigned",
            venue=assignment.venue,
            session_at=session_at.isoformat(),
            reassignment=current.assignment is not None,
        )
        return saved

    async def issue_ticket(
        self,
        member_id: UUID,
        operator_id: str | None = None,
    ) -> TicketIssueOutcome:
        """Issue the member's entry ticket.

        Valid from ATTENDANCE_CONFIRMED. For a member who already holds a
        ticket the existing ticket is returned with ALREADY_ISSUED.

        Raises:
            MemberNotFoundError: If the member is unknown.
            NotAttendingError: If attendance has not been confirmed.
        """
        operation = "issue_ticket"
        log = self._log_operation(operation, member_id=str(member_id), operator=operator_id)

        with self._metered(operation) as meter:
            async with self._locks.hold(member_id):
                current = await self.get(member_id)

                if current.ticket_issued:
                    ticket = await self._ledger.get_active_ticket(member_id)
                    if ticket is None or ticket.reference != current.ticket_reference:
                        raise InvariantViolationError(
                            f"Ledger has no active ticket matching registration {member_id}"
                        )
                    meter.noop = True
                    log.info("ticket_already_issued", reference=ticket.reference)
                    return TicketIssueOutcome(ticket=ticket, status=IssueStatus.ALREADY_ISSUED)

                if current.stage is not RegistrationStage.ATTENDANCE_CONFIRMED:
                    raise NotAttendingError(current.stage)

                now = self._time.now()
                ticket, created = await self._ledger.ensure_ticket(current, operator_id, now)
                updated = current.advance(
                    operation,
                    RegistrationStage.TICKET_ISSUED,
                    now,
                    ticket_reference=ticket.reference,
                    ticket_issued_at=ticket.issued_at,
                )
                await self._save(updated, current.version)

        log.info("ticket_issued", reference=ticket.reference, recovered=not created)
        return TicketIssueOutcome(ticket=ticket, status=IssueStatus.ISSUED)

    async def check_in(
        self,
        member_id: UUID,
        method: CheckInMethod,
        operator_id: str,
        venue: str | None = None,
    ) -> CheckInOutcome:
        """Record the member's arrival.

        Valid from TICKET_ISSUED. A repeat attempt for a checked-in member
        returns the original record with ALREADY_CHECKED_IN and is appended
        to the ledger as a duplicate; attendance is never counted twice.

        Raises:
            MemberNotFoundError: If the member is unknown.
            NoTicketError: If the member holds no ticket, or the ledger has
                voided the ticket the record points at.
            ValueError: If operator_id is blank.
        """
        operation = "check_in"
        operator_id = _require_text(operator_id, "operator_id")
        venue = _clean(venue)
        log = self._log_operation(
            operation,
            member_id=str(member_id),
            operator=operator_id,
            method=method.value,
            venue=venue,
        )

        with self._metered(operation) as meter:
            async with self._locks.hold(member_id):
                current = await self.get(member_id)
                now = self._time.now()

                if current.stage is RegistrationStage.CHECKED_IN:
                    reference = current.ticket_reference or ""
                    original = await self._ledger.get_authoritative_check_in(reference)
                    if original is None:
                        raise InvariantViolationError(
                            f"Ledger has no check-in for checked-in registration {member_id}"
                        )
                    await self._ledger.record_duplicate_attempt(
                        reference, member_id, method, operator_id, venue, now
                    )
                    meter.noop = True
                    log.warning(
                        "check_in_duplicate",
                        reference=reference,
                        original_operator=original.operator_id,
                        original_at=original.checked_in_at.isoformat(),
                    )
                    return CheckInOutcome(
                        record=original, status=CheckInStatus.ALREADY_CHECKED_IN
                    )

                if current.stage is not RegistrationStage.TICKET_ISSUED:
                    raise NoTicketError(current.stage)
                ticket = await self._ledger.find_ticket(current.ticket_reference or "")
                if ticket is None or not ticket.active:
                    log.warning("check_in_refused_inactive_ticket")
                    raise NoTicketError(current.stage)

                record, created = await self._ledger.ensure_check_in(
                    current.ticket_reference or "",
                    member_id,
                    method,
                    operator_id,
                    venue,
                    now,
                )
                updated = current.advance(
                    operation,
                    RegistrationStage.CHECKED_IN,
                    now,
                    checked_in_at=record.checked_in_at,
                    check_in_method=record.method,
                    check_in_operator=record.operator_id,
                    check_in_venue=record.venue,
                )
                await self._save(updated, current.version)

        log.info("checked_in", reference=record.ticket_reference, recovered=not created)
        return CheckInOutcome(record=record, status=CheckInStatus.CHECKED_IN)

    async def check_in_by_ticket(
        self,
        ticket_reference: str,
        operator_id: str,
        venue: str | None = None,
        method: CheckInMethod = CheckInMethod.QR_SCAN,
    ) -> CheckInOutcome:
        """Check a member in from a scanned ticket reference.

        Raises:
            MemberNotFoundError: If the reference is unknown.
            NoTicketError: If the ticket has been voided.
        """
        ticket = await self._ledger.find_ticket(ticket_reference)
        if ticket is None:
            raise MemberNotFoundError()
        if not ticket.active:
            current = await self.get(ticket.member_id)
            self._log_operation(
                "check_in_by_ticket", reference=ticket.reference
            ).warning("voided_ticket_scanned", member_id=str(ticket.member_id))
            raise NoTicketError(current.stage)
        return await self.check_in(ticket.member_id, method, operator_id, venue)

    async def bulk_check_in(
        self,
        member_ids: Sequence[UUID],
        operator_id: str,
        venue: str | None = None,
    ) -> list[BulkCheckInResult]:
        """Check in a batch of members with method BULK.

        Each member is processed independently; a failure is reported in
        that member's result and never aborts the batch.
        """
        operator_id = _require_text(operator_id, "operator_id")
        log = self._log_operation("bulk_check_in", operator=operator_id, venue=venue)

        results: list[BulkCheckInResult] = []
        for member_id in dict.fromkeys(member_ids):
            try:
                outcome = await self.check_in(
                    member_id, CheckInMethod.BULK, operator_id, venue
                )
            except RegistrationEngineError as exc:
                results.append(BulkCheckInResult(member_id=member_id, error=str(exc)))
            else:
                results.append(BulkCheckInResult(member_id=member_id, outcome=outcome))

        log.info(
            "bulk_check_in_completed",
            requested=len(results),
            failed=sum(1 for r in results if r.error is not None),
        )
        return results

    async def decide_special_vote(
        self,
        member_id: UUID,
        approved: bool,
        operator_id: str,
        notes: str | None = None,
    ) -> MemberRegistration:
        """Approve or decline a member's special vote request.

        Raises:
            MemberNotFoundError: If the member is unknown.
            NotEligibleError: If the member has no request on file.
            ValueError: If operator_id is blank.
        """
        operation = "decide_special_vote"
        operator_id = _require_text(operator_id, "operator_id")
        log = self._log_operation(operation, member_id=str(member_id), operator=operator_id)

        with self._metered(operation):
            async with self._locks.hold(member_id):
                current = await self.get(member_id)
                if not current.special_vote_requested:
                    raise NotEligibleError("No special vote request to decide")
                now = self._time.now()
                updated = current.with_changes(
                    now,
                    special_vote_status=(
                        SpecialVoteStatus.APPROVED if approved else SpecialVoteStatus.DECLINED
                    ),
                    special_vote_decided_by=operator_id,
                    special_vote_decided_at=now,
                )
                saved = await self._save(updated, current.version)

        log.info(
            "special_vote_decided",
            status=saved.special_vote_status.value,
            notes=_clean(notes),
        )
        return saved

    async def set_special_vote_eligibility(
        self,
        member_id: UUID,
        eligible: bool,
        operator_id: str,
        justification: str,
    ) -> MemberRegistration:
        """Grant or revoke special vote eligibility as an administrator.

        Overrides the rule-derived eligibility of a non-attending member.
        Revoking also withdraws any request. Always audited.

        Raises:
            MemberNotFoundError: If the member is unknown.
            InvalidTransitionError: If the member is not NOT_ATTENDING.
            ValueError: If operator_id or justification is blank.
        """
        operation = "set_special_vote_eligibility"
        operator_id = _require_text(operator_id, "operator_id")
        justification = _require_text(justification, "justification")
        log = self._log_operation(operation, member_id=str(member_id), operator=operator_id)

        with self._metered(operation):
            async with self._locks.hold(member_id):
                current = await self.get(member_id)
                if current.stage is not RegistrationStage.NOT_ATTENDING:
                    raise InvalidTransitionError(
                        operation=operation,
                        current_stage=current.stage,
                        allowed_from=[RegistrationStage.NOT_ATTENDING],
                    )
                now = self._time.now()
                if eligible:
                    changes: dict[str, object] = {
                        "special_vote_eligible": True,
                        "special_vote_rationale": ADMIN_GRANTED_RATIONALE,
                    }
                else:
                    changes = cleared_special_vote(keep_eligibility=True)
                    changes.update(
                        special_vote_eligible=False,
                        special_vote_rationale=ADMIN_REVOKED_RATIONALE,
                    )
                updated = current.with_changes(now, **changes)
                saved = await self._save(updated, current.version)
                await self._registrations.append_audit(
                    OverrideAuditEntry(
                        member_id=member_id,
                        action="special_vote_eligibility",
                        operator_id=operator_id,
                        justification=justification,
                        from_stage=current.stage.value,
                        to_stage=saved.stage.value,
                        recorded_at=now,
                    )
                )

        log.warning(
            "special_vote_eligibility_overridden",
            eligible=eligible,
            justification=justification,
        )
        return saved

    async def override_stage(
        self,
        member_id: UUID,
        target_stage: RegistrationStage,
        operator_id: str,
        justification: str,
        absence_reason: str | None = None,
    ) -> MemberRegistration:
        """Force a registration into any stage (privileged, audited).

        The transition table is bypassed but the resulting record must
        satisfy every stage/flag invariant. Moving back from a ticketed
        stage voids the ticket; moving back from CHECKED_IN to TICKET_ISSUED
        voids the check-in and keeps the ticket.

        The record is saved before the ledger is touched. If voiding fails
        after the save, repeating the override voids whatever the saved
        record no longer accounts for.

        Raises:
            MemberNotFoundError: If the member is unknown.
            InvariantViolationError: If target needs data the record lacks.
            ValueError: If operator_id or justification is blank.
        """
        operation = "override_stage"
        operator_id = _require_text(operator_id, "operator_id")
        justification = _require_text(justification, "justification")
        log = self._log_operation(operation, member_id=str(member_id), operator=operator_id)

        with self._metered(operation):
            async with self._locks.hold(member_id):
                current = await self.get(member_id)
                now = self._time.now()

                reason = normalize_reason_code(absence_reason) or current.absence_reason
                eligible, rationale = False, None
                if target_stage is RegistrationStage.NOT_ATTENDING and reason:
                    decision = evaluate_special_vote_eligibility(current.region, reason)
                    eligible, rationale = decision.eligible, decision.rationale or None

                updated = current.overridden(
                    target_stage,
                    now,
                    absence_reason=reason,
                    special_vote_eligible=eligible,
                    special_vote_rationale=rationale,
                )

                saved = await self._save(updated, current.version)
                await self._void_superseded_ledger_entries(saved, now)
                await self._registrations.append_audit(
                    OverrideAuditEntry(
                        member_id=member_id,
                        action="stage_override",
                        operator_id=operator_id,
                        justification=justification,
                        from_stage=current.stage.value,
                        to_stage=saved.stage.value,
                        recorded_at=now,
                    )
                )

        log.warning(
            "stage_overridden",
            from_stage=current.stage.value,
            to_stage=saved.stage.value,
            justification=justification,
        )
        return saved

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _void_superseded_ledger_entries(
        self, saved: MemberRegistration, now: datetime
    ) -> None:
        if not saved.ticket_issued:
            ticket = await self._ledger.get_active_ticket(saved.id)
            if ticket is not None:
                await self._ledger.void_ticket(ticket.reference, now)
        elif not saved.checked_in and saved.ticket_reference:
            stale = await self._ledger.get_authoritative_check_in(saved.ticket_reference)
            if stale is not None:
                await self._ledger.void_check_in(saved.ticket_reference)

    def _check_transition(
        self,
        operation: str,
        record: MemberRegistration,
        target: RegistrationStage,
    ) -> None:
        if not record.stage.can_transition_to(target):
            raise InvalidTransitionError(
                operation=operation,
                current_stage=record.stage,
                allowed_from=[s for s in RegistrationStage if s.can_transition_to(target)],
            )

    async def _save(
        self,
        updated: MemberRegistration,
        expected_version: int,
    ) -> MemberRegistration:
        return await self._registrations.save(updated, expected_version)

    @contextmanager
    def _metered(self, operation: str) -> Iterator[_Meter]:
        """Count the operation's outcome: ok, noop, or the error class name."""
        meter = _Meter()
        try:
            yield meter
        except RegistrationEngineError as exc:
            self._count(operation, type(exc).__name__)
            raise
        except ValueError:
            self._count(operation, "ValueError")
            raise
        self._count(operation, "noop" if meter.noop else "ok")

    def _count(self, operation: str, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_transition(operation, outcome)


class _Meter:
    """Mutable outcome flag for a metered operation."""

    def __init__(self) -> None:
        self.noop = False
