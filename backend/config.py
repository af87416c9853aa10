"""
config.py
=========
Environment-driven settings for the ZikaGuard backend.

Values are read once by load_settings() after python-dotenv has loaded the
project `.env`.  The orchestrator never reads the environment itself; it gets
an explicit OrchestratorConfig built from these settings.

  PYTHON_AI_URL            remote scoring service base URL ("" disables it)
  AI_MAX_ATTEMPTS          remote attempts per prediction          (3)
  AI_TIMEOUT_SECONDS       per-attempt HTTP timeout                (10)
  AI_RATE_LIMIT_BACKOFF    429 backoff step, × attempt number      (2)
  AI_RETRY_DELAY           delay after timeouts / refused / 5xx    (1)
  AI_OVERLOAD_RETRY_AFTER  suggested client delay when overloaded  (60)
  MIN_PATIENT_AGE / MAX_PATIENT_AGE                                (0 / 120)
  DATABASE_URL             SQLAlchemy URL        (sqlite:///./zikaguard.db)
  JWT_SECRET / JWT_ALGORITHM
  FRONTEND_URL, ENVIRONMENT, LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv  # type: ignore

from risk_engine.orchestrator import OrchestratorConfig

logger = logging.getLogger(__name__)

_ENV_FILE = os.path.join(os.path.dirname(__file__), "..", ".env")


def _clean_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    return value.strip().strip('"').strip("'")


def _env_int(name: str, default: int) -> int:
    value = _clean_env(name)
    if not value:
        return default
    try:
        return int(float(value))
    except ValueError:
        logger.warning("Ignoring malformed %s=%r; using %d.", name, value, default)
        return default


def _env_float(name: str, default: float) -> float:
    value = _clean_env(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r; using %s.", name, value, default)
        return default
    if parsed != parsed:  # NaN
        return default
    return parsed


@dataclass(frozen=True)
class Settings:
    remote_base_url: str = ""
    max_attempts: int = 3
    request_timeout: float = 10.0
    rate_limit_backoff: float = 2.0
    transient_retry_delay: float = 1.0
    overload_retry_after: float = 60.0
    min_age: float = 0
    max_age: float = 120
    database_url: str = "sqlite:///./zikaguard.db"
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    frontend_url: str = "http://localhost:3000"
    environment: str = "development"
    log_level: str = "INFO"
    version: str = "2.0.0"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def orchestrator_config(self) -> OrchestratorConfig:
        return OrchestratorConfig(
            remote_base_url       = self.remote_base_url,
            max_attempts          = self.max_attempts,
            request_timeout       = self.request_timeout,
            rate_limit_backoff    = self.rate_limit_backoff,
            transient_retry_delay = self.transient_retry_delay,
            overload_retry_after  = self.overload_retry_after,
            min_age               = self.min_age,
            max_age               = self.max_age,
        )


def load_settings() -> Settings:
    """Read settings from the environment (and `.env`, if present)."""
    load_dotenv(_ENV_FILE)

    return Settings(
        remote_base_url       = _clean_env("PYTHON_AI_URL").rstrip("/"),
        max_attempts          = max(1, _env_int("AI_MAX_ATTEMPTS", 3)),
        request_timeout       = _env_float("AI_TIMEOUT_SECONDS", 10.0),
        rate_limit_backoff    = _env_float("AI_RATE_LIMIT_BACKOFF", 2.0),
        transient_retry_delay = _env_float("AI_RETRY_DELAY", 1.0),
        overload_retry_after  = _env_float("AI_OVERLOAD_RETRY_AFTER", 60.0),
        min_age               = _env_float("MIN_PATIENT_AGE", 0),
        max_age               = _env_float("MAX_PATIENT_AGE", 120),
        database_url          = _clean_env("DATABASE_URL", "sqlite:///./zikaguard.db"),
        jwt_secret            = _clean_env("JWT_SECRET", "change-me-in-production"),
        jwt_algorithm         = _clean_env("JWT_ALGORITHM", "HS256"),
        frontend_url          = _clean_env("FRONTEND_URL", "http://localhost:3000"),
        environment           = _clean_env("ENVIRONMENT", "development"),
        log_level             = _clean_env("LOG_LEVEL", "INFO").upper(),
    )
