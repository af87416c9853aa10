"""
api/predict.py
==============
POST /predict
-------------
Accepts a JSON PredictionRequest:
  • patient_id     : str   (optional, assigned if missing)
  • age            : number
  • sex            : "M" | "F"
  • travel_history : str   (optional)
  • symptoms       : list  (optional)
  • comorbidities  : list  (optional)

Runs the prediction orchestrator (remote AI scorer with retries, local
fallback scorer otherwise) and returns

  200 {success, message, ai_prediction, patient, fallback}
  400 invalid input
  429 remote scorer overloaded behind bot-mitigation (Retry-After header set)
  500 unexpected failure

POST /predict/batch
-------------------
{"items": [PredictionRequest, ...]}: each item is predicted independently;
one failing item never aborts the others.
"""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from typing import Any, Dict, Tuple

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from backend.auth import get_current_user
from backend.api.deps import get_orchestrator
from backend.schemas.request import BatchPredictRequest, PredictRequest
from backend.schemas.response import (
    AIPrediction,
    BatchItemResponse,
    BatchPredictResponse,
    ErrorResponse,
    PatientSummary,
    PredictResponse,
)
from risk_engine.errors import PredictionValidationError
from risk_engine.orchestrator import PredictionOrchestrator, PredictionOutcome

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/predict",
    response_model=PredictResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def predict(
    payload: PredictRequest,
    requester: str = Depends(get_current_user),
    orchestrator: PredictionOrchestrator = Depends(get_orchestrator),
):
    """Run one Zika/malaria risk prediction."""
    data = _with_patient_id(payload.model_dump())

    try:
        outcome = await asyncio.to_thread(orchestrator.predict, data, requester)
    except PredictionValidationError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, exc.message, "validation_error", exc.details)
    except Exception as exc:
        logger.error("Prediction failed for patient=%s: %s", data["patient_id"], exc, exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Prediction failed", "internal_error")

    status_code, body = _outcome_body(outcome)
    headers = None
    if status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        headers = {"Retry-After": str(math.ceil(outcome.retry_after or 0))}
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@router.post("/predict/batch", response_model=BatchPredictResponse)
async def predict_batch(
    payload: BatchPredictRequest,
    requester: str = Depends(get_current_user),
    orchestrator: PredictionOrchestrator = Depends(get_orchestrator),
):
    """Predict several patients; each item gets its own status code."""
    items = [_with_patient_id(item.model_dump()) for item in payload.items]
    outcomes = await asyncio.to_thread(orchestrator.predict_many, items, requester)

    results = []
    for item in outcomes:
        if item.error is not None:
            status_code = status.HTTP_400_BAD_REQUEST
            body = ErrorResponse(
                message = item.error.message,
                error   = "validation_error",
                details = item.error.details,
            ).model_dump(exclude_none=True)
        else:
            status_code, body = _outcome_body(item.outcome)
        results.append(BatchItemResponse(index=item.index, status_code=status_code, body=body))

    return BatchPredictResponse(
        total     = len(results),
        succeeded = sum(1 for r in results if r.status_code == status.HTTP_200_OK),
        results   = results,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _with_patient_id(data: Dict[str, Any]) -> Dict[str, Any]:
    if not data.get("patient_id"):
        data["patient_id"] = f"PATIENT_{uuid.uuid4().hex[:8].upper()}"
    return data


def _outcome_body(outcome: PredictionOutcome) -> Tuple[int, Dict[str, Any]]:
    if outcome.overloaded:
        retry_after = math.ceil(outcome.retry_after or 0)
        return status.HTTP_429_TOO_MANY_REQUESTS, ErrorResponse(
            message = f"AI service overloaded. Please retry in {retry_after} seconds.",
            error   = "service_overloaded",
            details = {"retry_after": retry_after},
        ).model_dump(exclude_none=True)

    request, result = outcome.request, outcome.result
    response = PredictResponse(
        message = (
            "Prediction generated by local fallback scorer (AI service unavailable)"
            if result.is_fallback else "Prediction generated by AI service"
        ),
        ai_prediction = AIPrediction(**result.to_dict()),
        patient = PatientSummary(
            patient_id     = request.patient_id,
            age            = request.age,
            sex            = request.sex,
            travel_history = request.travel_history,
        ),
        fallback = result.is_fallback,
    )
    return status.HTTP_200_OK, response.model_dump()


def _error(status_code: int, message: str, error: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code = status_code,
        content     = ErrorResponse(message=message, error=error, details=details or None).model_dump(exclude_none=True),
    )
