"""
main.py
=======
FastAPI application entry point for ZikaGuard.

Run locally:
  uvicorn backend.main:app --reload --port 5000

create_app() builds the record store and the prediction orchestrator once and
keeps them on app.state; the lifespan handler creates the tables at startup
and releases connections at shutdown.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.api.health import router as health_router
from backend.api.patients import router as patients_router
from backend.api.predict import router as predict_router
from backend.api.records import router as records_router
from backend.config import Settings, load_settings
from backend.schemas.response import ErrorResponse
from risk_engine.orchestrator import PredictionOrchestrator
from risk_engine.remote_client import RemoteScoringClient
from storage.store import RecordStore

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("ZikaGuard backend starting up (%s)…", settings.environment)

    app.state.store.create_tables()
    if app.state.orchestrator.remote_configured:
        logger.info("Remote AI scorer: %s", settings.remote_base_url)
    else:
        logger.warning("PYTHON_AI_URL not set; every prediction will use the fallback scorer.")

    logger.info("All components initialised. Ready.")
    yield

    app.state.orchestrator.close()
    app.state.store.dispose()
    logger.info("ZikaGuard backend shutting down.")


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------

def _envelope(status_code: int, message: str, error: Optional[str] = None, details=None, headers=None):
    return JSONResponse(
        status_code = status_code,
        content     = ErrorResponse(message=message, error=error, details=details).model_dump(exclude_none=True),
        headers     = headers,
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        details = {
            ".".join(str(part) for part in err["loc"] if part != "body") or "body": err["msg"]
            for err in exc.errors()
        }
        return _envelope(status.HTTP_400_BAD_REQUEST, "Invalid request", "validation_error", details)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            return _envelope(exc.status_code, "Route not found")
        return _envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        logger.error("Server error: %s", exc, exc_info=True)
        settings: Settings = request.app.state.settings
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            str(exc) if settings.is_development else None,
        )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    remote_client: Optional[RemoteScoringClient] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    settings = settings or load_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(
        title       = "ZikaGuard API",
        description = (
            "Zika / malaria triage risk prediction with remote AI scoring with "
            "rate-limit aware retries and a deterministic local fallback."
        ),
        version     = settings.version,
        docs_url    = "/docs",
        redoc_url   = "/redoc",
        lifespan    = lifespan,
    )

    store = store or RecordStore(settings.database_url)
    app.state.settings = settings
    app.state.store = store
    app.state.orchestrator = PredictionOrchestrator(
        settings.orchestrator_config(),
        persist = store.save_prediction,
        client  = remote_client,
        sleep   = sleep,
    )

    # ── CORS ──────────────────────────────────────────────────────────────
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        settings.frontend_url,
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins     = origins,
        allow_credentials = True,
        allow_methods     = ["*"],
        allow_headers     = ["*"],
    )

    _register_error_handlers(app)

    # ── Routers ───────────────────────────────────────────────────────────
    app.include_router(health_router)
    app.include_router(predict_router)
    app.include_router(patients_router)
    app.include_router(records_router)

    return app


app = create_app()
