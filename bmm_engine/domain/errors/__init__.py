"""Domain errors for the registration engine.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from RegistrationEngineError.
"""

from bmm_engine.domain.errors.concurrent_modification import (
    ConcurrentModificationError,
)
from bmm_engine.domain.errors.delivery import (
    CampaignNotFoundError,
    TemplateVariableError,
    TransportFailureError,
)
from bmm_engine.domain.errors.registration import (
    InvalidTransitionError,
    InvariantViolationError,
    MemberNotFoundError,
    MissingReasonError,
    NoTicketError,
    NotAttendingError,
    NotEligibleError,
    RegistrationError,
)

__all__: list[str] = [
    "CampaignNotFoundError",
    "ConcurrentModificationError",
    "InvalidTransitionError",
    "InvariantViolationError",
    "MemberNotFoundError",
    "MissingReasonError",
    "NoTicketError",
    "NotAttendingError",
    "NotEligibleError",
    "RegistrationError",
    "TemplateVariableError",
    "TransportFailureError",
]
