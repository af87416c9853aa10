"""
api/patients.py
===============
GET  /api/patients : list patients, most recently reported first
POST /api/patients : register a patient (or refresh their demographics)

Patients are never deleted through this API.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from backend.auth import get_current_user
from backend.api.deps import get_store
from backend.schemas.request import PatientIn
from risk_engine.errors import PersistenceError
from risk_engine.prediction import normalise_sex
from storage.store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", dependencies=[Depends(get_current_user)])


@router.get("")
async def list_patients(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: RecordStore = Depends(get_store),
):
    try:
        patients = await asyncio.to_thread(store.list_patients, limit, offset)
    except PersistenceError as exc:
        logger.error("Listing patients failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return {"success": True, "patients": patients}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientIn,
    request: Request,
    store: RecordStore = Depends(get_store),
):
    settings = request.app.state.settings
    if payload.age is not None and not (settings.min_age <= payload.age <= settings.max_age):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"age must be between {settings.min_age:g} and {settings.max_age:g}",
        )

    sex = None
    if payload.sex is not None:
        sex = normalise_sex(payload.sex)
        if sex is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="sex must be one of M, F",
            )

    try:
        patient = await asyncio.to_thread(
            store.upsert_patient, payload.patient_id.strip(), payload.age, sex, payload.residence,
        )
    except PersistenceError as exc:
        logger.error("Saving patient %s failed: %s", payload.patient_id, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return {"success": True, "patient": patient}
