"""Special vote eligibility rules.

A member who will not attend the meeting may apply for a special vote when
their region runs a special vote and their absence reason qualifies:

- Region must be CENTRAL or SOUTHERN. Outside those regions the member is
  not eligible and no rationale is shown.
- Reason must be one of sick, distance (lives more than 32km from the
  venue) or work.
- Free-text reasons ("other", "custom") never qualify.
- Anything unrecognised, missing or blank fails closed.

The evaluator is a pure function: same inputs, same decision.
"""

from __future__ import annotations

from dataclasses import dataclass

from bmm_engine.domain.models.region import SPECIAL_VOTE_REGIONS, Region

# Qualifying reason codes and the rationale shown to the member
ELIGIBLE_REASONS: dict[str, str] = {
    "sick": "You are eligible for a special vote due to illness.",
    "distance": (
        "You are eligible for a special vote because you live more than "
        "32km from the meeting venue."
    ),
    "work": "You are eligible for a special vote due to work requirements.",
}

# Codes the member uses to supply a reason in their own words
FREE_TEXT_REASONS: frozenset[str] = frozenset({"other", "custom"})

FREE_TEXT_RATIONALE = "Other reasons do not qualify for a special vote."
UNRECOGNISED_RATIONALE = "This reason does not qualify for a special vote."


@dataclass(frozen=True, eq=True)
class EligibilityDecision:
    """Outcome of an eligibility evaluation.

    Attributes:
        eligible: Whether the member may request a special vote.
        rationale: Member-facing explanation. Empty outside special vote regions.
    """

    eligible: bool
    rationale: str = ""


def normalize_reason_code(reason: str | None) -> str | None:
    """Trim and lower-case an absence reason code.

    Returns:
        The normalised code, or None for a missing or blank reason.
    """
    if reason is None:
        return None
    normalised = reason.strip().lower()
    return normalised or None


def evaluate_special_vote_eligibility(
    region: Region | None,
    absence_reason: str | None,
) -> EligibilityDecision:
    """Decide whether a non-attending member may request a special vote.

    Args:
        region: The member's canonical region.
        absence_reason: Absence reason code as submitted.

    Returns:
        EligibilityDecision with the member-facing rationale.
    """
    if region is None or region not in SPECIAL_VOTE_REGIONS:
        return EligibilityDecision(eligible=False)

    code = normalize_reason_code(absence_reason)
    if code is None:
        return EligibilityDecision(eligible=False, rationale=UNRECOGNISED_RATIONALE)

    rationale = ELIGIBLE_REASONS.get(code)
    if rationale is not None:
        return EligibilityDecision(eligible=True, rationale=rationale)

    if code in FREE_TEXT_REASONS:
        return EligibilityDecision(eligible=False, rationale=FREE_TEXT_RATIONALE)

    return EligibilityDecision(eligible=False, rationale=UNRECOGNISED_RATIONALE)
