# backend/schemas/__init__.py
from backend.schemas.request import BatchPredictRequest, PatientIn, PredictRequest
from backend.schemas.response import (
    AIPrediction,
    BatchItemResponse,
    BatchPredictResponse,
    ErrorResponse,
    PatientSummary,
    PredictResponse,
    RecordStats,
)

__all__ = [
    "PredictRequest", "BatchPredictRequest", "PatientIn",
    "AIPrediction", "PatientSummary", "PredictResponse", "ErrorResponse",
    "BatchItemResponse", "BatchPredictResponse", "RecordStats",
]
