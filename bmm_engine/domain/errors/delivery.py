"""Outbound delivery and campaign errors.

Transport and template errors never fail a whole campaign. The dispatcher
captures them per recipient job and surfaces them in the campaign report.
"""

from __future__ import annotations

from uuid import UUID

from bmm_engine.domain.exceptions import RegistrationEngineError


class TransportFailureError(RegistrationEngineError):
    """Raised when the notifier or ticket renderer collaborator fails.

    Attributes:
        retryable: True when the failure is transient (timeout, 5xx, throttling)
            and the same job may be attempted again with backoff.
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        self.retryable = retryable
        super().__init__(message)


class TemplateVariableError(RegistrationEngineError):
    """Raised when a message placeholder cannot be resolved for a recipient.

    Attributes:
        placeholder: The placeholder name as written in the template.
    """

    def __init__(self, placeholder: str, reason: str) -> None:
        self.placeholder = placeholder
        super().__init__(f"Cannot resolve {{{{{placeholder}}}}}: {reason}")


class CampaignNotFoundError(RegistrationEngineError):
    """Raised when a report or resume names a campaign that was never dispatched."""

    def __init__(self, campaign_id: UUID) -> None:
        self.campaign_id = campaign_id
        super().__init__(f"Campaign {campaign_id} not found")
