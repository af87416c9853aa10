"""
schemas/response.py
===================
Pydantic v2 models for every JSON body the API returns.

Success bodies carry `success: true`; every failure (validation, auth,
overload, server error) uses ErrorResponse so clients can branch on a single
field.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------

class AIPrediction(BaseModel):
    risk_level: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    recommendation: str
    factors_considered: Dict[str, Any] = Field(default_factory=dict)
    source: str               # "remote" | "fallback"


class PatientSummary(BaseModel):
    patient_id: str
    age: float
    sex: str
    travel_history: str = ""


# ---------------------------------------------------------------------------
# Top-level responses
# ---------------------------------------------------------------------------

class PredictResponse(BaseModel):
    success: bool = True
    message: str
    ai_prediction: AIPrediction
    patient: PatientSummary
    fallback: bool


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class BatchItemResponse(BaseModel):
    index: int
    status_code: int
    body: Dict[str, Any]


class BatchPredictResponse(BaseModel):
    success: bool = True
    total: int
    succeeded: int
    results: List[BatchItemResponse]


class RecordStats(BaseModel):
    success: bool = True
    total: int
    by_source: Dict[str, int]
