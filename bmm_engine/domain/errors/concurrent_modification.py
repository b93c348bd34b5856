"""Concurrent modification error for optimistic version checks.

Raised by repositories when a member record is saved against a version
that is no longer current. In-process callers never see it because the
stage machine serialises work per member; it protects against a second
process writing the same record.
"""

from __future__ import annotations

from uuid import UUID

from bmm_engine.domain.exceptions import RegistrationEngineError


class ConcurrentModificationError(RegistrationEngineError):
    """Raised when a compare-and-swap save fails on a stale version.

    This is a recoverable error - the caller should re-read the record
    and decide whether to retry or abort.

    Attributes:
        member_id: UUID of the registration that was being modified.
        expected_version: Version the caller read.
        actual_version: Version currently stored.
    """

    def __init__(
        self,
        member_id: UUID,
        expected_version: int,
        actual_version: int,
    ) -> None:
        """Initialize concurrent modification error.

        Args:
            member_id: UUID of the registration being modified.
            expected_version: Version the caller read.
            actual_version: Version currently stored.
        """
        self.member_id = member_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent modification detected for registration {member_id}. "
            f"Expected version {expected_version}, found {actual_version}."
        )
