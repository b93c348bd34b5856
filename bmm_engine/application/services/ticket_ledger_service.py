"""Ticket ledger service.

Owns the ledger side of ticketing: issuing tickets, appending check-in
records, voiding on override and recording re-deliveries. The stage
machine calls it while holding the member's lock. Issuance and check-in
write the ledger before the member record, so a retry after a failed
record write reuses the entry already in place rather than issuing a
second ticket or a second authoritative check-in. Overrides void entries
only after the record is saved.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from bmm_engine.application.ports.ticket_ledger_repository import (
    TicketLedgerRepositoryProtocol,
)
from bmm_engine.application.services.base import LoggingMixin
from bmm_engine.domain.models.registration import MemberRegistration
from bmm_engine.domain.models.ticket import (
    CheckInMethod,
    CheckInRecord,
    Ticket,
    TicketDelivery,
    new_ticket_reference,
)


class TicketLedgerService(LoggingMixin):
    """Idempotent ticket issuance and check-in recording."""

    def __init__(self, ledger: TicketLedgerRepositoryProtocol) -> None:
        self._ledger = ledger
        self._init_logger(component="ticketing")

    async def get_active_ticket(self, member_id: UUID) -> Ticket | None:
        """Return the member's active ticket, if any."""
        return await self._ledger.get_active_ticket(member_id)

    async def find_ticket(self, reference: str) -> Ticket | None:
        """Look a ticket up by reference (active or voided)."""
        if not reference:
            return None
        return await self._ledger.get_ticket(reference.strip())

    async def ensure_ticket(
        self,
        member: MemberRegistration,
        issued_by: str | None,
        now: datetime,
    ) -> tuple[Ticket, bool]:
        """Return the member's active ticket, issuing one if none exists.

        Args:
            member: Registration the ticket is for.
            issued_by: Operator issuing the ticket.
            now: Issue timestamp.

        Returns:
            Tuple of (ticket, created). created is False when an active
            ticket from an earlier, partially failed issuance was reused.
        """
        log = self._log_operation("ensure_ticket", member_id=str(member.id))

        active = await self._ledger.get_active_ticket(member.id)
        if active is not None:
            log.info("ticket_reused", reference=active.reference)
            return active, False

        ticket = Ticket(
            reference=new_ticket_reference(),
            member_id=member.id,
            event_id=member.event_id,
            issued_at=now,
            issued_by=issued_by,
        )
        await self._ledger.add_ticket(ticket)
        log.info("ticket_recorded", reference=ticket.reference)
        return ticket, True

    async def ensure_check_in(
        self,
        ticket_reference: str,
        member_id: UUID,
        method: CheckInMethod,
        operator_id: str,
        venue: str | None,
        now: datetime,
    ) -> tuple[CheckInRecord, bool]:
        """Return the authoritative check-in for a ticket, appending one if needed.

        Returns:
            Tuple of (record, created).
        """
        existing = await self._ledger.get_authoritative_check_in(ticket_reference)
        if existing is not None:
            return existing, False

        record = CheckInRecord(
            ticket_reference=ticket_reference,
            member_id=member_id,
            checked_in_at=now,
            method=method,
            operator_id=operator_id,
            venue=venue,
        )
        await self._ledger.append_check_in(record)
        return record, True

    async def get_authoritative_check_in(self, ticket_reference: str) -> CheckInRecord | None:
        """Return the authoritative check-in for a ticket, if any."""
        return await self._ledger.get_authoritative_check_in(ticket_reference)

    async def record_duplicate_attempt(
        self,
        ticket_reference: str,
        member_id: UUID,
        method: CheckInMethod,
        operator_id: str,
        venue: str | None,
        now: datetime,
    ) -> CheckInRecord:
        """Append a duplicate check-in attempt to the audit trail."""
        record = CheckInRecord(
            ticket_reference=ticket_reference,
            member_id=member_id,
            checked_in_at=now,
            method=method,
            operator_id=operator_id,
            venue=venue,
            duplicate=True,
        )
        return await self._ledger.append_check_in(record)

    async def void_ticket(self, reference: str, now: datetime) -> None:
        """Void a ticket and every check-in recorded against it."""
        voided = await self._ledger.void_check_ins(reference)
        await self._ledger.void_ticket(reference, now)
        self._log_operation("void_ticket", reference=reference).info(
            "ticket_voided", check_ins_voided=voided
        )

    async def void_check_in(self, reference: str) -> None:
        """Void the check-ins recorded against a ticket, keeping the ticket."""
        voided = await self._ledger.void_check_ins(reference)
        self._log_operation("void_check_in", reference=reference).info(
            "check_in_voided", check_ins_voided=voided
        )

    async def record_delivery(self, delivery: TicketDelivery) -> None:
        """Record a ticket (re-)delivery event."""
        await self._ledger.add_delivery(delivery)

    async def list_check_ins(self, member_id: UUID | None = None) -> list[CheckInRecord]:
        """List check-in records, duplicates included."""
        return await self._ledger.list_check_ins(member_id)

    async def list_deliveries(self, reference: str) -> list[TicketDelivery]:
        """List delivery events for a ticket."""
        return await self._ledger.list_deliveries(reference)
