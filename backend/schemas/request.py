"""
schemas/request.py
==================
Inbound payload models.

Fields are typed but deliberately not range-checked here: age range and sex
codes are checked against the configured limits by the orchestrator and the
patients router, so every path enforces the same range.
"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PredictRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "patient_id":     "ABSUTH-0042",
                "age":            55,
                "sex":            "F",
                "travel_history": "trip to Brazil in March",
                "symptoms":       ["fever", "rash"],
                "comorbidities":  [],
            }
        },
    )

    patient_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("patient_id", "patientId"),
    )
    age: Optional[float] = None
    sex: Optional[str] = None
    travel_history: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("travel_history", "travelHistory"),
    )
    symptoms: Optional[Union[List[str], str]] = None
    comorbidities: Optional[Union[List[str], str]] = None


class BatchPredictRequest(BaseModel):
    items: List[PredictRequest] = Field(..., min_length=1, max_length=100)


class PatientIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("patient_id", "patientId"),
    )
    age: Optional[float] = None
    sex: Optional[str] = None
    residence: Optional[str] = None
