"""Domain services for the registration engine.

Domain services contain business logic that doesn't naturally fit in entities
or value objects. They are pure functions over domain models.

Available services:
- evaluate_special_vote_eligibility: Special vote eligibility rules
- matches / select: Segment filter predicate and selection
- render / validate_template: Strict message template rendering
"""

from bmm_engine.domain.services.eligibility import (
    EligibilityDecision,
    evaluate_special_vote_eligibility,
    normalize_reason_code,
)
from bmm_engine.domain.services.segment_filter import matches, select
from bmm_engine.domain.services.template_renderer import (
    KNOWN_PLACEHOLDERS,
    render,
    validate_template,
)

__all__ = [
    "EligibilityDecision",
    "KNOWN_PLACEHOLDERS",
    "evaluate_special_vote_eligibility",
    "matches",
    "normalize_reason_code",
    "render",
    "select",
    "validate_template",
]
