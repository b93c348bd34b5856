"""Message template rendering.

Templates reference member data with {{placeholder}} variables drawn from a
closed set. Rendering is strict: a placeholder outside the set, or one whose
value is not available for the recipient, raises TemplateVariableError so
that the recipient's job fails instead of a message going out with a blank
or a literal "{{ticketUrl}}" in it.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from bmm_engine.domain.errors.delivery import TemplateVariableError
from bmm_engine.domain.models.campaign import MessageTemplate, RenderedMessage

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")

KNOWN_PLACEHOLDERS: frozenset[str] = frozenset(
    {
        "name",
        "firstName",
        "membershipNumber",
        "region",
        "forum",
        "assignedVenue",
        "assignedDateTime",
        "registrationLink",
        "specialVoteLink",
        "ticketUrl",
    }
)


def placeholders_in(text: str) -> set[str]:
    """Return the placeholder names referenced by text."""
    return set(PLACEHOLDER_PATTERN.findall(text))


def validate_template(template: MessageTemplate) -> None:
    """Reject a template that references an unknown placeholder.

    Raises:
        TemplateVariableError: For the first unknown placeholder found.
    """
    names = placeholders_in(template.body) | placeholders_in(template.subject or "")
    for name in sorted(names):
        if name not in KNOWN_PLACEHOLDERS:
            raise TemplateVariableError(name, "unknown placeholder")


def render_text(text: str, values: Mapping[str, str | None]) -> str:
    """Substitute every placeholder in text.

    Args:
        text: Template text.
        values: Placeholder values for one recipient. None marks a value
            that does not apply to the recipient.

    Raises:
        TemplateVariableError: If a placeholder is unknown or unresolvable.
    """

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in KNOWN_PLACEHOLDERS:
            raise TemplateVariableError(name, "unknown placeholder")
        value = values.get(name)
        if value is None:
            raise TemplateVariableError(name, "not available for this member")
        return value

    return PLACEHOLDER_PATTERN.sub(_substitute, text)


def render(template: MessageTemplate, values: Mapping[str, str | None]) -> RenderedMessage:
    """Render a template's subject and body for one recipient."""
    subject = render_text(template.subject, values) if template.subject else None
    return RenderedMessage(body=render_text(template.body, values), subject=subject)
