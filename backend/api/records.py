"""
api/records.py
==============
GET    /api/records        : clinical records, newest first (filter by source / patient)
GET    /api/records/stats  : record counts split by source (remote vs fallback)
DELETE /api/records/{id}   : operator removal of a single record
"""

from __future__ import annotations

import asyncio
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backend.auth import get_current_user
from backend.api.deps import get_store
from backend.schemas.response import RecordStats
from risk_engine.errors import PersistenceError
from storage.store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records")


@router.get("")
async def list_records(
    source: Optional[Literal["remote", "fallback"]] = Query(default=None),
    patient_id: Optional[str] = Query(default=None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: RecordStore = Depends(get_store),
    _user: str = Depends(get_current_user),
):
    try:
        records = await asyncio.to_thread(store.list_records, source, patient_id, limit, offset)
    except PersistenceError as exc:
        logger.error("Listing records failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return {"success": True, "records": records}


@router.get("/stats", response_model=RecordStats)
async def record_stats(
    store: RecordStore = Depends(get_store),
    _user: str = Depends(get_current_user),
):
    try:
        counts = await asyncio.to_thread(store.source_counts)
    except PersistenceError as exc:
        logger.error("Record stats failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    by_source = {"remote": counts.get("remote", 0), "fallback": counts.get("fallback", 0)}
    return RecordStats(total=sum(counts.values()), by_source=by_source)


@router.delete("/{record_id}")
async def delete_record(
    record_id: int,
    store: RecordStore = Depends(get_store),
    operator: str = Depends(get_current_user),
):
    try:
        deleted = await asyncio.to_thread(store.delete_record, record_id)
    except PersistenceError as exc:
        logger.error("Deleting record %d failed: %s", record_id, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
    logger.info("Record %d deleted by %s.", record_id, operator)
    return {"success": True, "message": f"Record {record_id} deleted"}
