"""
api/health.py
=============
GET /           : service banner with the endpoint map
GET /api/health : liveness and readiness probe for the ZikaGuard backend.
"""

import asyncio

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/")
async def service_banner(request: Request):
    settings = request.app.state.settings
    return {
        "status":  "ACTIVE",
        "service": "ZikaGuard Backend API",
        "version": settings.version,
        "endpoints": {
            "predict":  "/predict",
            "batch":    "/predict/batch",
            "patients": "/api/patients",
            "records":  "/api/records",
            "health":   "/api/health",
        },
        "pythonAI": settings.remote_base_url or "Not configured",
    }


@router.get("/api/health")
async def health_check(request: Request):
    """Return service status and component readiness flags."""
    state = request.app.state
    database_ready = await asyncio.to_thread(state.store.ping)

    return {
        "status":            "ok" if database_ready else "degraded",
        "database_ready":    database_ready,
        "remote_configured": state.orchestrator.remote_configured,
        "api_version":       state.settings.version,
    }
