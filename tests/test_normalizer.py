"""Tests for remote response envelope normalisation."""

import pytest

from risk_engine.errors import RemoteUnavailableError
from risk_engine.normalizer import normalise_confidence, normalise_response


class TestEnvelopes:
    def test_nested_prediction_object(self):
        body = {
            "success": True,
            "prediction": {
                "risk_level":       "HIGH - Urgent Testing Required",
                "risk_probability": 0.8123,
                "recommendation":   "Refer for immediate Malaria & Zika lab tests",
            },
        }
        result = normalise_response(body)

        assert result.risk_level == "HIGH - Urgent Testing Required"
        assert result.confidence == 0.8123
        assert result.recommendation.startswith("Refer")
        assert result.source == "remote"
        assert not result.is_fallback

    def test_flat_risk_level(self):
        result = normalise_response({"risk_level": "LOW", "probability": 0.2, "recommendation": "Monitor"})

        assert result.risk_level == "LOW"
        assert result.confidence == 0.2

    def test_already_normalised(self):
        body = {
            "riskLevel":         "MODERATE RISK",
            "confidence":        0.65,
            "recommendation":    "Screen within 24h",
            "factorsConsidered": {"age": 40},
        }
        result = normalise_response(body)

        assert result.risk_level == "MODERATE RISK"
        assert result.factors_considered == {"age": 40}

    @pytest.mark.parametrize("key", ["ai_prediction", "result", "data"])
    def test_alternate_nested_keys(self, key):
        result = normalise_response({key: {"riskLevel": "HIGH", "confidence": 0.9}})
        assert result.risk_level == "HIGH"

    def test_missing_recommendation_gets_default(self):
        result = normalise_response({"risk_level": "LOW", "confidence": 0.9})
        assert result.recommendation

    def test_unrecognised_envelope_is_not_retryable(self):
        with pytest.raises(RemoteUnavailableError) as exc_info:
            normalise_response({"status": "ok"})
        assert exc_info.value.retryable is False

    def test_non_object_body(self):
        with pytest.raises(RemoteUnavailableError):
            normalise_response(["HIGH"])


class TestConfidence:
    @pytest.mark.parametrize("raw, expected", [
        (0.42, 0.42),
        (1, 1.0),
        (85, 0.85),
        (100, 1.0),
        (250, 1.0),
        (-3, 0.0),
        ("0.7", 0.7),
        (None, 0.0),
        ("high", 0.0),
        (float("nan"), 0.0),
    ])
    def test_scale(self, raw, expected):
        assert normalise_confidence(raw) == expected
