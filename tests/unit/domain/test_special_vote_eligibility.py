"""Unit tests for special vote eligibility rules."""

import pytest

from bmm_engine.domain.models.region import Region
from bmm_engine.domain.services.eligibility import (
    ELIGIBLE_REASONS,
    FREE_TEXT_RATIONALE,
    UNRECOGNISED_RATIONALE,
    evaluate_special_vote_eligibility,
    normalize_reason_code,
)

REASONS = ["sick", "distance", "work", "other", "custom", "holiday", "", None]


class TestEligibilityTable:
    """Exhaustive region x reason table."""

    @pytest.mark.parametrize("region", list(Region))
    @pytest.mark.parametrize("reason", REASONS)
    def test_eligible_iff_special_vote_region_and_qualifying_reason(
        self, region: Region, reason: str | None
    ) -> None:
        decision = evaluate_special_vote_eligibility(region, reason)
        expected = region in (Region.CENTRAL, Region.SOUTHERN) and reason in ELIGIBLE_REASONS
        assert decision.eligible is expected

    @pytest.mark.parametrize("reason", REASONS)
    def test_northern_members_get_no_rationale(self, reason: str | None) -> None:
        decision = evaluate_special_vote_eligibility(Region.NORTHERN, reason)
        assert decision.eligible is False
        assert decision.rationale == ""

    def test_missing_region_fails_closed(self) -> None:
        assert evaluate_special_vote_eligibility(None, "sick").eligible is False


class TestRationale:
    def test_southern_sick_is_eligible_with_illness_rationale(self) -> None:
        decision = evaluate_special_vote_eligibility(Region.SOUTHERN, "sick")
        assert decision.eligible
        assert "illness" in decision.rationale

    def test_distance_rationale_mentions_32km(self) -> None:
        decision = evaluate_special_vote_eligibility(Region.CENTRAL, "distance")
        assert "32km" in decision.rationale

    @pytest.mark.parametrize("reason", ["other", "custom", " Custom "])
    def test_free_text_reasons_do_not_qualify(self, reason: str) -> None:
        decision = evaluate_special_vote_eligibility(Region.SOUTHERN, reason)
        assert decision.eligible is False
        assert decision.rationale == FREE_TEXT_RATIONALE

    @pytest.mark.parametrize("reason", ["holiday", "   ", None])
    def test_unrecognised_reasons_fail_closed(self, reason: str | None) -> None:
        decision = evaluate_special_vote_eligibility(Region.CENTRAL, reason)
        assert decision.eligible is False
        assert decision.rationale == UNRECOGNISED_RATIONALE

    def test_reason_codes_are_case_insensitive(self) -> None:
        assert evaluate_special_vote_eligibility(Region.CENTRAL, "  WORK ").eligible

    def test_evaluation_is_deterministic(self) -> None:
        first = evaluate_special_vote_eligibility(Region.SOUTHERN, "sick")
        second = evaluate_special_vote_eligibility(Region.SOUTHERN, "sick")
        assert first == second


class TestNormalizeReasonCode:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("Sick", "sick"), ("  work ", "work"), ("", None), ("  ", None), (None, None)],
    )
    def test_normalisation(self, raw: str | None, expected: str | None) -> None:
        assert normalize_reason_code(raw) == expected
