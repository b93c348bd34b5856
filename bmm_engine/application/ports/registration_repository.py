"""Registration repository port.

Defines the storage contract for member registration records and the
override audit trail. Records are never physically deleted.

Concurrency:
    save() is a compare-and-swap on the record version. A save against a
    stale version raises ConcurrentModificationError, so a second process
    cannot overwrite a newer record.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from bmm_engine.domain.models.registration import MemberRegistration
from bmm_engine.domain.models.ticket import OverrideAuditEntry


class RegistrationRepositoryProtocol(Protocol):
    """Protocol for registration record storage and retrieval."""

    async def get(self, member_id: UUID) -> MemberRegistration | None:
        """Retrieve a registration by id.

        Returns:
            The registration if found, None otherwise.
        """
        ...

    async def get_by_token(self, access_token: str) -> MemberRegistration | None:
        """Retrieve a registration by its self-service access token."""
        ...

    async def get_by_membership_number(
        self,
        event_id: UUID,
        membership_number: str,
    ) -> MemberRegistration | None:
        """Retrieve a registration by membership number within an event."""
        ...

    async def list_all(self) -> list[MemberRegistration]:
        """Retrieve every registration, ordered by membership number."""
        ...

    async def list_by_event(self, event_id: UUID) -> list[MemberRegistration]:
        """Retrieve every registration for one event, ordered by membership number."""
        ...

    async def add(self, record: MemberRegistration) -> MemberRegistration:
        """Store a new registration.

        Args:
            record: Registration to store (version 0).

        Returns:
            The stored registration.

        Raises:
            ValueError: If the id, access token or (event, membership number)
                is already in use.
        """
        ...

    async def save(
        self,
        record: MemberRegistration,
        expected_version: int,
    ) -> MemberRegistration:
        """Replace a registration if its stored version matches.

        Args:
            record: Updated registration.
            expected_version: Version the caller read.

        Returns:
            The stored registration with its version incremented.

        Raises:
            MemberNotFoundError: If the registration does not exist.
            ConcurrentModificationError: If the stored version differs.
        """
        ...

    async def append_audit(self, entry: OverrideAuditEntry) -> None:
        """Append a privileged-action audit entry."""
        ...

    async def list_audit(self, member_id: UUID | None = None) -> list[OverrideAuditEntry]:
        """List audit entries, optionally for one member, oldest first."""
        ...
