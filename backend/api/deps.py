"""
api/deps.py
===========
FastAPI dependencies resolving the singletons created in the lifespan handler.
"""

from fastapi import Request

from risk_engine.orchestrator import PredictionOrchestrator
from storage.store import RecordStore


def get_orchestrator(request: Request) -> PredictionOrchestrator:
    return request.app.state.orchestrator


def get_store(request: Request) -> RecordStore:
    return request.app.state.store
