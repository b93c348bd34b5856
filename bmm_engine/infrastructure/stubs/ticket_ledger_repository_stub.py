"""Ticket ledger repository stub implementation.

In-memory, append-only implementation of TicketLedgerRepositoryProtocol.
Voiding replaces the stored entry with a voided copy; nothing is removed.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from bmm_engine.application.ports.ticket_ledger_repository import (
    TicketLedgerRepositoryProtocol,
)
from bmm_engine.domain.models.ticket import CheckInRecord, Ticket, TicketDelivery


class TicketLedgerRepositoryStub(TicketLedgerRepositoryProtocol):
    """In-memory stub for the ticket ledger (not for production use)."""

    def __init__(self) -> None:
        """Initialize the stub with empty storage."""
        self._tickets: dict[str, Ticket] = {}
        self._check_ins: list[CheckInRecord] = []
        self._deliveries: list[TicketDelivery] = []
        self._lock = asyncio.Lock()

    def clear(self) -> None:
        """Clear all stored data (for test cleanup)."""
        self._tickets.clear()
        self._check_ins.clear()
        self._deliveries.clear()

    async def get_active_ticket(self, member_id: UUID) -> Ticket | None:
        for ticket in self._tickets.values():
            if ticket.member_id == member_id and ticket.active:
                return ticket
        return None

    async def get_ticket(self, reference: str) -> Ticket | None:
        return self._tickets.get(reference)

    async def add_ticket(self, ticket: Ticket) -> Ticket:
        """Store a newly issued ticket.

        Raises:
            ValueError: If the member already holds an active ticket
                or the reference is already in use.
        """
        async with self._lock:
            if ticket.reference in self._tickets:
                raise ValueError("Ticket reference already in use")
            if await self.get_active_ticket(ticket.member_id) is not None:
                raise ValueError(f"Member {ticket.member_id} already holds an active ticket")
            self._tickets[ticket.reference] = ticket
        return ticket

    async def void_ticket(self, reference: str, voided_at: datetime) -> Ticket | None:
        async with self._lock:
            ticket = self._tickets.get(reference)
            if ticket is None:
                return None
            if ticket.active:
                ticket = replace(ticket, voided_at=voided_at)
                self._tickets[reference] = ticket
        return ticket

    async def append_check_in(self, record: CheckInRecord) -> CheckInRecord:
        async with self._lock:
            self._check_ins.append(record)
        return record

    async def get_authoritative_check_in(self, reference: str) -> CheckInRecord | None:
        for record in self._check_ins:
            if record.ticket_reference == reference and record.authoritative:
                return record
        return None

    async def list_check_ins(self, member_id: UUID | None = None) -> list[CheckInRecord]:
        if member_id is None:
            return list(self._check_ins)
        return [r for r in self._check_ins if r.member_id == member_id]

    async def void_check_ins(self, reference: str) -> int:
        voided = 0
        async with self._lock:
            for index, record in enumerate(self._check_ins):
                if record.ticket_reference == reference and not record.voided:
                    self._check_ins[index] = replace(record, voided=True)
                    voided += 1
        return voided

    async def add_delivery(self, delivery: TicketDelivery) -> None:
        self._deliveries.append(delivery)

    async def list_deliveries(self, reference: str) -> list[TicketDelivery]:
        return [d for d in self._deliveries if d.ticket_reference == reference]

    async def list_tickets(self, active_only: bool = True) -> list[Ticket]:
        return [t for t in self._tickets.values() if t.active or not active_only]
