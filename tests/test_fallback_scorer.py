"""Tests for the deterministic fallback risk scorer."""

import pytest

from risk_engine.fallback_scorer import (
    HIGH_RISK_REGIONS,
    RISK_HIGH,
    RISK_LOW,
    RISK_MODERATE,
    compute_risk_score,
    matched_high_risk_regions,
    score_request,
)
from risk_engine.prediction import PredictionRequest

TIER_CONFIDENCE = {RISK_HIGH: 0.85, RISK_MODERATE: 0.65, RISK_LOW: 0.90}


def _request(age, sex="M", travel=""):
    return PredictionRequest(age=age, sex=sex, patient_id="P-1", travel_history=travel)


class TestScoreRequest:
    def test_documented_example_is_high_risk(self):
        result = score_request(_request(55, "F", "trip to Brazil"))

        assert result.factors_considered["risk_score"] == 6
        assert result.risk_level == RISK_HIGH
        assert result.confidence == 0.85
        assert result.source == "fallback"
        assert result.is_fallback

    @pytest.mark.parametrize("age", [0, 1, 18, 30, 30.5, 31, 50, 51, 80, 120])
    @pytest.mark.parametrize("sex", ["M", "F"])
    @pytest.mark.parametrize("travel", ["", "went abroad", "visited Lagos"])
    def test_always_one_of_three_tiers(self, age, sex, travel):
        result = score_request(_request(age, sex, travel))

        assert result.risk_level in TIER_CONFIDENCE
        assert result.confidence == TIER_CONFIDENCE[result.risk_level]
        assert result.recommendation

    def test_young_male_without_travel_is_low_risk(self):
        result = score_request(_request(25, "M"))

        assert result.risk_level == RISK_LOW
        assert result.factors_considered["risk_score"] == 0
        assert result.factors_considered["contributions"] == []

    def test_moderate_band(self):
        # 40 → +1, female → +1
        result = score_request(_request(40, "F"))

        assert result.factors_considered["risk_score"] == 2
        assert result.risk_level == RISK_MODERATE

    def test_score_three_is_still_moderate(self):
        result = score_request(_request(60, "F"))

        assert result.factors_considered["risk_score"] == 3
        assert result.risk_level == RISK_MODERATE

    def test_factors_record_inputs(self):
        request = PredictionRequest(
            age=45, sex="F", patient_id="P-2", travel_history="none",
            symptoms=["fever"], comorbidities=["diabetes"],
        )
        factors = score_request(request).factors_considered

        assert factors["age"] == 45
        assert factors["sex"] == "F"
        assert factors["symptoms"] == ["fever"]
        assert factors["comorbidities"] == ["diabetes"]

    def test_factors_are_read_only(self):
        result = score_request(_request(60, "F", "Brazil"))

        with pytest.raises(TypeError):
            result.factors_considered["risk_score"] = 0

        exported = result.to_dict()
        exported["factors_considered"]["risk_score"] = 0
        assert result.factors_considered["risk_score"] == 6


class TestAgeBands:
    @pytest.mark.parametrize("age, points", [(30, 0), (30.1, 1), (50, 1), (50.5, 2), (51, 2)])
    def test_age_boundaries(self, age, points):
        score, _ = compute_risk_score(_request(age))
        assert score == points


class TestTravel:
    @pytest.mark.parametrize("region", HIGH_RISK_REGIONS)
    @pytest.mark.parametrize("age, sex", [(20, "M"), (40, "F"), (70, "F")])
    def test_high_risk_region_adds_exactly_three(self, region, age, sex):
        base, _ = compute_risk_score(_request(age, sex, ""))
        with_region, _ = compute_risk_score(_request(age, sex, f"returned from {region.title()} last week"))

        assert with_region - base == 3

    def test_high_risk_region_does_not_also_count_generic_travel(self):
        score, contributions = compute_risk_score(_request(20, "M", "travel to Nigeria"))

        assert score == 3
        assert [c["factor"] for c in contributions] == ["high_risk_travel"]

    def test_generic_travel_adds_one(self):
        score, contributions = compute_risk_score(_request(20, "M", "Travelled abroad for work"))

        assert score == 1
        assert contributions[0]["factor"] == "recent_travel"

    def test_region_match_is_whole_word(self):
        assert matched_high_risk_regions("Indiana and Ghanaian food") == []

    def test_matched_regions_are_distinct(self):
        assert matched_high_risk_regions("Lagos, then Abuja, then Lagos again") == ["lagos", "abuja"]

    def test_no_travel_history(self):
        score, _ = compute_risk_score(_request(20, "M", ""))
        assert score == 0
