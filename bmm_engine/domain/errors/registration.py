"""Registration lifecycle errors.

This module defines the errors raised by the stage machine when an
operation is not valid for a member's current registration record.

Error taxonomy:
- InvalidTransitionError: operation not valid from the current stage
- MissingReasonError / NotEligibleError: user-correctable validation failures
- NotAttendingError / NoTicketError: ticketing preconditions not met
- InvariantViolationError: a privileged override would break a cross-flag rule
- MemberNotFoundError: unknown token, member or ticket reference
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bmm_engine.domain.exceptions import RegistrationEngineError

if TYPE_CHECKING:
    from bmm_engine.domain.models.registration import RegistrationStage


class RegistrationError(RegistrationEngineError):
    """Base error for registration lifecycle operations."""

    pass


class InvalidTransitionError(RegistrationError):
    """Raised when an operation is not valid from the member's current stage.

    Surfaced to the caller; never retried.

    Attributes:
        operation: Name of the rejected operation.
        current_stage: Stage the record was in.
        allowed_from: Stages the operation is valid from.
    """

    def __init__(
        self,
        operation: str,
        current_stage: RegistrationStage,
        allowed_from: list[RegistrationStage] | None = None,
    ) -> None:
        """Initialize invalid transition error.

        Args:
            operation: Name of the rejected operation.
            current_stage: Stage the record was in.
            allowed_from: Stages the operation is valid from (optional).
        """
        self.operation = operation
        self.current_stage = current_stage
        self.allowed_from = allowed_from or []

        allowed_str = (
            f" Valid from: {[s.value for s in self.allowed_from]}"
            if self.allowed_from
            else ""
        )
        super().__init__(
            f"Operation '{operation}' is not valid from stage "
            f"{current_stage.value}.{allowed_str}"
        )


class MissingReasonError(RegistrationError):
    """Raised when a member declines attendance without giving a reason."""

    def __init__(self) -> None:
        super().__init__("An absence reason is required when not attending")


class NotEligibleError(RegistrationError):
    """Raised when a special vote action is not permitted for the member.

    Covers both a member request from an ineligible record and an admin
    decision on a record with no pending request.
    """

    def __init__(self, message: str = "Member is not eligible for a special vote") -> None:
        super().__init__(message)


class NotAttendingError(RegistrationError):
    """Raised when a ticket is requested for a member not confirmed attending.

    Attributes:
        current_stage: Stage the record was in.
    """

    def __init__(self, current_stage: RegistrationStage) -> None:
        self.current_stage = current_stage
        super().__init__(
            f"Tickets are only issued to confirmed attendees "
            f"(current stage: {current_stage.value})"
        )


class NoTicketError(RegistrationError):
    """Raised when check-in is attempted for a member without a ticket.

    Attributes:
        current_stage: Stage the record was in.
    """

    def __init__(self, current_stage: RegistrationStage) -> None:
        self.current_stage = current_stage
        super().__init__(
            f"Check-in requires an issued ticket (current stage: {current_stage.value})"
        )


class InvariantViolationError(RegistrationError):
    """Raised when a record would break a stage/flag invariant.

    Ordinary transitions cannot produce this; it guards record construction
    and the privileged override path.
    """

    pass


class MemberNotFoundError(RegistrationError):
    """Raised when a token, member id or ticket reference is unknown.

    The message is deliberately identical for every lookup kind so callers
    cannot tell whether a token or a membership number was wrong.
    """

    def __init__(self) -> None:
        super().__init__("Registration not found")
