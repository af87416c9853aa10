"""
prediction.py
=============
Core value types that flow through the orchestrator.

PredictionRequest is the validated, normalised form of the inbound payload.
PredictionResult is the canonical output shape regardless of whether the
remote scorer or the local fallback produced it.  Confidence is always on
the 0–1 scale.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

SOURCE_REMOTE   = "remote"
SOURCE_FALLBACK = "fallback"

SEX_MALE   = "M"
SEX_FEMALE = "F"

_SEX_ALIASES: Dict[str, str] = {
    "M":      SEX_MALE,
    "MALE":   SEX_MALE,
    "F":      SEX_FEMALE,
    "FEMALE": SEX_FEMALE,
}


def normalise_sex(value: Any) -> Optional[str]:
    """Return "M" / "F" for any recognised spelling, otherwise None."""
    if not isinstance(value, str):
        return None
    return _SEX_ALIASES.get(value.strip().upper())


@dataclass(frozen=True)
class PredictionRequest:
    age: float
    sex: str
    patient_id: Optional[str] = None
    travel_history: str = ""
    symptoms: List[str] = field(default_factory=list)
    comorbidities: List[str] = field(default_factory=list)

    def remote_payload(self) -> Dict[str, Any]:
        """Body sent to the remote scorer's /predict endpoint."""
        return {
            "age":            int(self.age),
            "sex":            self.sex,
            "travel_history": self.travel_history or "",
        }


@dataclass(frozen=True)
class PredictionResult:
    """
    One scored prediction.  `factors_considered` is copied on construction and
    exposed as a read-only mapping.
    """
    risk_level: str
    confidence: float
    recommendation: str
    factors_considered: Mapping[str, Any]
    source: str

    def __post_init__(self):
        factors = copy.deepcopy(dict(self.factors_considered or {}))
        object.__setattr__(self, "factors_considered", MappingProxyType(factors))

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_level":         self.risk_level,
            "confidence":         self.confidence,
            "recommendation":     self.recommendation,
            "factors_considered": copy.deepcopy(dict(self.factors_considered)),
            "source":             self.source,
        }
