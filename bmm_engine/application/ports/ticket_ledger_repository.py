"""Ticket ledger repository port.

Append-only storage for tickets, check-in records and ticket deliveries.
Nothing is deleted: voiding a ticket or check-in marks the stored entry.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from bmm_engine.domain.models.ticket import CheckInRecord, Ticket, TicketDelivery


class TicketLedgerRepositoryProtocol(Protocol):
    """Protocol for ticket ledger storage."""

    async def get_active_ticket(self, member_id: UUID) -> Ticket | None:
        """Return the member's non-voided ticket, if any."""
        ...

    async def get_ticket(self, reference: str) -> Ticket | None:
        """Return a ticket (active or voided) by reference."""
        ...

    async def add_ticket(self, ticket: Ticket) -> Ticket:
        """Store a newly issued ticket.

        Raises:
            ValueError: If the member already holds an active ticket
                or the reference is already in use.
        """
        ...

    async def void_ticket(self, reference: str, voided_at: datetime) -> Ticket | None:
        """Mark a ticket voided. Returns the updated ticket, None if unknown."""
        ...

    async def append_check_in(self, record: CheckInRecord) -> CheckInRecord:
        """Append a check-in record."""
        ...

    async def get_authoritative_check_in(self, reference: str) -> CheckInRecord | None:
        """Return the first non-duplicate, non-voided check-in for a ticket."""
        ...

    async def list_check_ins(self, member_id: UUID | None = None) -> list[CheckInRecord]:
        """List check-in records (duplicates included), oldest first."""
        ...

    async def void_check_ins(self, reference: str) -> int:
        """Void every check-in for a ticket. Returns the number voided."""
        ...

    async def add_delivery(self, delivery: TicketDelivery) -> None:
        """Record a ticket delivery event."""
        ...

    async def list_deliveries(self, reference: str) -> list[TicketDelivery]:
        """List delivery events for a ticket, oldest first."""
        ...

    async def list_tickets(self, active_only: bool = True) -> list[Ticket]:
        """List tickets, by default only active ones."""
        ...
