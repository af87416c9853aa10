"""
fallback_scorer.py
==================
Deterministic, rule-based Zika/malaria risk score used whenever the remote
AI scoring service cannot be reached.

Scoring rules (additive, starting at 0):

  Age
    > 50          → +2
    31–50         → +1
  Sex
    female        → +1
  Travel history
    high-risk region mentioned            → +3
    otherwise generic travel/abroad words → +1

Tiers:

    score ≥ 4   → HIGH RISK      (confidence 0.85)
    2 ≤ score<4 → MODERATE RISK  (confidence 0.65)
    score < 2   → LOW RISK       (confidence 0.90)

The result is a pure function of the request: no network data, no clock.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Tuple

from risk_engine.prediction import (
    SEX_FEMALE,
    SOURCE_FALLBACK,
    PredictionRequest,
    PredictionResult,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Risk tier constants
# ---------------------------------------------------------------------------
RISK_HIGH     = "HIGH RISK"
RISK_MODERATE = "MODERATE RISK"
RISK_LOW      = "LOW RISK"

HIGH_RISK_THRESHOLD     = 4
MODERATE_RISK_THRESHOLD = 2

# Each tier is (confidence, recommendation_text)
_TIERS: Dict[str, Tuple[float, str]] = {
    RISK_HIGH: (
        0.85,
        "Urgent: refer for immediate Zika and malaria laboratory testing "
        "(RDT / blood smear and Zika PCR). Isolate from mosquito exposure and "
        "review pregnancy status for female patients.",
    ),
    RISK_MODERATE: (
        0.65,
        "Schedule Zika and malaria screening within 24 hours. Monitor for fever, "
        "rash, joint pain or conjunctivitis and return immediately if symptoms worsen.",
    ),
    RISK_LOW: (
        0.90,
        "Low risk. Continue mosquito prevention (nets, repellent, covered clothing) "
        "and seek care if fever or rash develops.",
    ),
}

# ---------------------------------------------------------------------------
# Travel keyword tables
# ---------------------------------------------------------------------------
HIGH_RISK_REGIONS: Tuple[str, ...] = (
    "brazil",
    "colombia",
    "venezuela",
    "mexico",
    "puerto rico",
    "caribbean",
    "nigeria",
    "ghana",
    "lagos",
    "abuja",
    "kenya",
    "uganda",
    "cameroon",
    "india",
    "thailand",
    "indonesia",
    "singapore",
)

GENERIC_TRAVEL_KEYWORDS: Tuple[str, ...] = (
    "travel",
    "travelled",
    "traveled",
    "abroad",
    "trip",
    "visited",
    "yes",
)

_HIGH_RISK_RE = re.compile(
    r"\b(" + "|".join(re.escape(r) for r in HIGH_RISK_REGIONS) + r")\b",
    re.IGNORECASE,
)
_GENERIC_TRAVEL_RE = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in GENERIC_TRAVEL_KEYWORDS) + r")\b",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def matched_high_risk_regions(travel_history: str) -> List[str]:
    """Return the distinct high-risk regions mentioned, lower-cased, in order."""
    seen: List[str] = []
    for match in _HIGH_RISK_RE.finditer(travel_history or ""):
        region = match.group(1).lower()
        if region not in seen:
            seen.append(region)
    return seen


def compute_risk_score(request: PredictionRequest) -> Tuple[int, List[Dict[str, Any]]]:
    """
    Compute the additive risk score for a request.

    Returns
    -------
    (score, contributions) where contributions is a list of
    {"factor": str, "points": int} entries, one per rule that fired.
    """
    score = 0
    contributions: List[Dict[str, Any]] = []

    if request.age > 50:
        contributions.append({"factor": "age_over_50", "points": 2})
    elif request.age > 30:
        contributions.append({"factor": "age_31_to_50", "points": 1})

    if request.sex == SEX_FEMALE:
        contributions.append({"factor": "female", "points": 1})

    travel = request.travel_history or ""
    regions = matched_high_risk_regions(travel)
    if regions:
        contributions.append({
            "factor":  "high_risk_travel",
            "points":  3,
            "regions": regions,
        })
    elif _GENERIC_TRAVEL_RE.search(travel):
        contributions.append({"factor": "recent_travel", "points": 1})

    for entry in contributions:
        score += entry["points"]

    return score, contributions


def tier_for_score(score: int) -> str:
    if score >= HIGH_RISK_THRESHOLD:
        return RISK_HIGH
    if score >= MODERATE_RISK_THRESHOLD:
        return RISK_MODERATE
    return RISK_LOW


def score_request(request: PredictionRequest) -> PredictionResult:
    """
    Produce a fallback PredictionResult for a validated request.

    Parameters
    ----------
    request : validated PredictionRequest (age in range, sex "M" / "F")

    Returns
    -------
    PredictionResult tagged source="fallback", with the numeric score and
    every contributing factor recorded in factors_considered.
    """
    score, contributions = compute_risk_score(request)
    risk_level = tier_for_score(score)
    confidence, recommendation = _TIERS[risk_level]

    logger.debug(
        "Fallback score for patient=%s: %d → %s (%s)",
        request.patient_id, score, risk_level,
        ", ".join(c["factor"] for c in contributions) or "no factors",
    )

    return PredictionResult(
        risk_level         = risk_level,
        confidence         = confidence,
        recommendation     = recommendation,
        factors_considered = {
            "age":            request.age,
            "sex":            request.sex,
            "travel_history": request.travel_history or "",
            "symptoms":       list(request.symptoms),
            "comorbidities":  list(request.comorbidities),
            "contributions":  contributions,
            "risk_score":     score,
        },
        source = SOURCE_FALLBACK,
    )
