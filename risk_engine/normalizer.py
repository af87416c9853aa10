"""
normalizer.py
=============
Map the remote scorer's JSON body onto the canonical PredictionResult.

The remote service has shipped several response envelopes over time:

  nested      {"prediction": {"risk_level": ..., "risk_probability": ...}}
              (also under "ai_prediction", "result" or "data")
  flat        {"risk_level": "HIGH", "probability": 0.81, "recommendation": ...}
  normalised  {"riskLevel": ..., "confidence": ..., "recommendation": ...,
               "factorsConsidered": {...}}

Confidence may arrive as a probability (0–1) or a percentage (0–100); it is
always returned on the 0–1 scale.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from risk_engine.errors import RemoteUnavailableError
from risk_engine.prediction import SOURCE_REMOTE, PredictionResult

logger = logging.getLogger(__name__)

_NESTED_KEYS         = ("prediction", "ai_prediction", "result", "data")
_RISK_LEVEL_KEYS     = ("risk_level", "riskLevel", "risk")
_CONFIDENCE_KEYS     = ("confidence", "probability", "risk_probability", "riskProbability")
_RECOMMENDATION_KEYS = ("recommendation", "advice")
_FACTORS_KEYS        = ("factors_considered", "factorsConsidered", "factors")

_DEFAULT_RECOMMENDATION = "Follow clinical judgement; remote scorer gave no recommendation."


def _first(body: Mapping[str, Any], keys) -> Any:
    for key in keys:
        if key in body and body[key] is not None:
            return body[key]
    return None


def _locate_prediction(body: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """Return the mapping that actually carries the risk level."""
    if _first(body, _RISK_LEVEL_KEYS) is not None:
        return body
    for key in _NESTED_KEYS:
        inner = body.get(key)
        if isinstance(inner, Mapping) and _first(inner, _RISK_LEVEL_KEYS) is not None:
            return inner
    return None


def normalise_confidence(value: Any) -> float:
    """Coerce a probability or percentage to a float in [0, 1]."""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if confidence != confidence:  # NaN
        return 0.0
    if 1.0 < confidence <= 100.0:
        confidence = confidence / 100.0
    return round(max(0.0, min(confidence, 1.0)), 4)


def normalise_response(body: Any) -> PredictionResult:
    """
    Convert a decoded JSON body to a remote-sourced PredictionResult.

    Raises
    ------
    RemoteUnavailableError (non-retryable) if no known envelope matches.
    """
    if not isinstance(body, Mapping):
        raise RemoteUnavailableError(
            f"Remote scorer returned {type(body).__name__}, expected an object.",
            retryable=False,
        )

    prediction = _locate_prediction(body)
    if prediction is None:
        raise RemoteUnavailableError(
            "Remote scorer response has no recognisable prediction "
            f"(keys: {sorted(body.keys())}).",
            retryable=False,
        )

    factors = _first(prediction, _FACTORS_KEYS)
    factors_considered: Dict[str, Any] = dict(factors) if isinstance(factors, Mapping) else {}

    result = PredictionResult(
        risk_level         = str(_first(prediction, _RISK_LEVEL_KEYS)).strip(),
        confidence         = normalise_confidence(_first(prediction, _CONFIDENCE_KEYS)),
        recommendation     = str(_first(prediction, _RECOMMENDATION_KEYS) or _DEFAULT_RECOMMENDATION),
        factors_considered = factors_considered,
        source             = SOURCE_REMOTE,
    )
    logger.debug("Normalised remote prediction: %s (%.2f)", result.risk_level, result.confidence)
    return result
