"""Registration repository stub implementation.

In-memory implementation of RegistrationRepositoryProtocol for development
and testing. Saves are compare-and-swap on the record version.
"""

from __future__ import annotations

import asyncio
from uuid import UUID

from bmm_engine.application.ports.registration_repository import (
    RegistrationRepositoryProtocol,
)
from bmm_engine.domain.errors.concurrent_modification import ConcurrentModificationError
from bmm_engine.domain.errors.registration import MemberNotFoundError
from bmm_engine.domain.models.registration import MemberRegistration
from bmm_engine.domain.models.ticket import OverrideAuditEntry


def _membership_key(event_id: UUID, membership_number: str) -> tuple[UUID, str]:
    return event_id, membership_number.strip().upper()


class RegistrationRepositoryStub(RegistrationRepositoryProtocol):
    """In-memory stub for registration storage (not for production use).

    Attributes:
        _records: Registrations keyed by id.
        _by_token: Access token to registration id.
        _by_membership: (event_id, membership number) to registration id.
        _audit: Append-only privileged-action audit trail.
    """

    def __init__(self) -> None:
        """Initialize the stub with empty storage."""
        self._records: dict[UUID, MemberRegistration] = {}
        self._by_token: dict[str, UUID] = {}
        self._by_membership: dict[tuple[UUID, str], UUID] = {}
        self._audit: list[OverrideAuditEntry] = []
        # Lock for simulating atomic compare-and-swap
        self._cas_lock = asyncio.Lock()
        self.save_failures_remaining = 0

    def clear(self) -> None:
        """Clear all stored data (for test cleanup)."""
        self._records.clear()
        self._by_token.clear()
        self._by_membership.clear()
        self._audit.clear()
        self.save_failures_remaining = 0

    def fail_next_saves(self, count: int = 1) -> None:
        """Make the next count saves raise RuntimeError (for recovery tests)."""
        self.save_failures_remaining = count

    async def get(self, member_id: UUID) -> MemberRegistration | None:
        return self._records.get(member_id)

    async def get_by_token(self, access_token: str) -> MemberRegistration | None:
        member_id = self._by_token.get(access_token)
        return self._records.get(member_id) if member_id else None

    async def get_by_membership_number(
        self,
        event_id: UUID,
        membership_number: str,
    ) -> MemberRegistration | None:
        member_id = self._by_membership.get(_membership_key(event_id, membership_number))
        return self._records.get(member_id) if member_id else None

    async def list_all(self) -> list[MemberRegistration]:
        return sorted(self._records.values(), key=lambda r: r.membership_number)

    async def list_by_event(self, event_id: UUID) -> list[MemberRegistration]:
        records = [r for r in self._records.values() if r.event_id == event_id]
        return sorted(records, key=lambda r: r.membership_number)

    async def add(self, record: MemberRegistration) -> MemberRegistration:
        """Store a new registration.

        Raises:
            ValueError: If the id, token or membership number is already in use.
        """
        key = _membership_key(record.event_id, record.membership_number)
        async with self._cas_lock:
            if record.id in self._records:
                raise ValueError(f"Registration already exists: {record.id}")
            if record.access_token in self._by_token:
                raise ValueError("Access token already in use")
            if key in self._by_membership:
                raise ValueError(
                    f"Membership number {record.membership_number} already registered"
                )
            self._records[record.id] = record
            self._by_token[record.access_token] = record.id
            self._by_membership[key] = record.id
        return record

    async def save(
        self,
        record: MemberRegistration,
        expected_version: int,
    ) -> MemberRegistration:
        """Replace a registration if the stored version matches.

        Raises:
            MemberNotFoundError: If the registration does not exist.
            ConcurrentModificationError: If the stored version differs.
            RuntimeError: If a failure was injected with fail_next_saves().
        """
        async with self._cas_lock:
            if self.save_failures_remaining > 0:
                self.save_failures_remaining -= 1
                raise RuntimeError("Injected registration save failure")
            stored = self._records.get(record.id)
            if stored is None:
                raise MemberNotFoundError()
            if stored.version != expected_version:
                raise ConcurrentModificationError(
                    member_id=record.id,
                    expected_version=expected_version,
                    actual_version=stored.version,
                )
            saved = record.with_version(expected_version + 1)
            self._records[record.id] = saved
        return saved

    async def append_audit(self, entry: OverrideAuditEntry) -> None:
        self._audit.append(entry)

    async def list_audit(self, member_id: UUID | None = None) -> list[OverrideAuditEntry]:
        if member_id is None:
            return list(self._audit)
        return [e for e in self._audit if e.member_id == member_id]
