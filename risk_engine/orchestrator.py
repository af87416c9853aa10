"""
orchestrator.py
===============
Prediction orchestration: remote AI scorer first, local fallback always.

Flow for one request:

  1. Validate (age within configured range, sex "M" / "F").  Invalid requests
     raise PredictionValidationError and never touch the network.
  2. Call the remote scorer up to `max_attempts` times.
       429 with JSON body → wait retry-after header, else backoff × attempt
       429 with HTML body → bot-mitigation challenge: stop, report overloaded
       timeout / refused / 5xx → wait `transient_retry_delay`
       other 4xx / bad body → stop immediately
     No wait follows the final attempt.
  3. On success normalise the remote envelope; otherwise compute the
     fallback score locally.
  4. Hand the result to the persistence hook.  Persistence errors are logged
     and discarded; they never change the prediction outcome.

The orchestrator holds no per-request state, so one instance is shared by
all request threads.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from risk_engine.errors import (
    PredictionValidationError,
    RemoteRateLimitedError,
    RemoteUnavailableError,
)
from risk_engine.fallback_scorer import score_request
from risk_engine.normalizer import normalise_response
from risk_engine.prediction import PredictionRequest, PredictionResult, normalise_sex
from risk_engine.remote_client import RemoteScoringClient

logger = logging.getLogger(__name__)

# persist(request, result, requester); any exception is swallowed
PersistHook = Callable[[PredictionRequest, PredictionResult, Optional[str]], Any]


@dataclass(frozen=True)
class OrchestratorConfig:
    remote_base_url: str = ""
    max_attempts: int = 3
    request_timeout: float = 10.0
    rate_limit_backoff: float = 2.0      # seconds × attempt number
    transient_retry_delay: float = 1.0
    overload_retry_after: float = 60.0   # suggested delay when no hint is given
    min_age: float = 0
    max_age: float = 120


@dataclass(frozen=True)
class PredictionOutcome:
    """
    What the orchestrator hands back to its caller.

    Exactly one of `result` / `overloaded` is meaningful: when `overloaded` is
    True the remote service is refusing automated traffic and `result` is None.
    """
    request: PredictionRequest
    result: Optional[PredictionResult] = None
    overloaded: bool = False
    retry_after: Optional[float] = None
    attempts: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def fallback(self) -> bool:
        return self.result is not None and self.result.is_fallback


@dataclass(frozen=True)
class BatchItemOutcome:
    index: int
    outcome: Optional[PredictionOutcome] = None
    error: Optional[PredictionValidationError] = None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


def build_request(data: Mapping[str, Any], config: OrchestratorConfig) -> PredictionRequest:
    """
    Validate a raw payload and return a PredictionRequest.

    Accepts both `travel_history` and `travelHistory`, and both `patient_id`
    and `patientId`.  Raises PredictionValidationError listing every bad field.
    """
    details: Dict[str, str] = {}

    raw_age = data.get("age")
    age: Optional[float] = None
    if raw_age is None or isinstance(raw_age, bool) or raw_age == "":
        details["age"] = "age is required"
    else:
        try:
            age = float(raw_age)
        except (TypeError, ValueError):
            details["age"] = "age must be a number"
        else:
            if age != age or not (config.min_age <= age <= config.max_age):
                details["age"] = (
                    f"age must be between {config.min_age:g} and {config.max_age:g}"
                )

    raw_sex = data.get("sex")
    sex = normalise_sex(raw_sex)
    if raw_sex is None or raw_sex == "":
        details["sex"] = "sex is required"
    elif sex is None:
        details["sex"] = "sex must be one of M, F"

    if details:
        raise PredictionValidationError("Invalid prediction request", details)

    travel = data.get("travel_history", data.get("travelHistory")) or ""
    patient_id = data.get("patient_id", data.get("patientId"))

    return PredictionRequest(
        age            = age,
        sex            = sex,
        patient_id     = str(patient_id).strip() if patient_id else None,
        travel_history = str(travel).strip(),
        symptoms       = _as_str_list(data.get("symptoms")),
        comorbidities  = _as_str_list(data.get("comorbidities")),
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class PredictionOrchestrator:
    def __init__(
        self,
        config: OrchestratorConfig,
        persist: Optional[PersistHook] = None,
        client: Optional[RemoteScoringClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.persist = persist
        self.sleep = sleep
        if client is None and config.remote_base_url:
            client = RemoteScoringClient(config.remote_base_url, timeout=config.request_timeout)
        self.client = client

    @property
    def remote_configured(self) -> bool:
        return self.client is not None

    # -- public -------------------------------------------------------------

    def predict(
        self,
        data: Mapping[str, Any],
        requester: Optional[str] = None,
    ) -> PredictionOutcome:
        """
        Run one prediction.

        Raises PredictionValidationError for malformed input; every other
        failure is absorbed into a fallback result or an overloaded outcome.
        """
        request = build_request(data, self.config)
        return self.predict_request(request, requester)

    def predict_request(
        self,
        request: PredictionRequest,
        requester: Optional[str] = None,
    ) -> PredictionOutcome:
        outcome = self._call_remote(request)

        if outcome.overloaded:
            logger.warning(
                "Remote scorer overloaded (bot-mitigation); patient=%s retry_after=%.0fs",
                request.patient_id, outcome.retry_after or 0,
            )
            return outcome

        if outcome.result is None:
            logger.warning(
                "Using fallback scorer for patient=%s after %d attempt(s): %s",
                request.patient_id, outcome.attempts,
                "; ".join(outcome.errors) or "remote scorer not configured",
            )
            outcome = PredictionOutcome(
                request  = request,
                result   = score_request(request),
                attempts = outcome.attempts,
                errors   = outcome.errors,
            )

        self._persist(request, outcome.result, requester)
        return outcome

    def predict_many(
        self,
        items: List[Mapping[str, Any]],
        requester: Optional[str] = None,
    ) -> List[BatchItemOutcome]:
        """Predict each item independently; a bad item never aborts the rest."""
        results: List[BatchItemOutcome] = []
        for index, data in enumerate(items):
            try:
                outcome = self.predict(data, requester)
            except PredictionValidationError as exc:
                logger.info("Batch item %d rejected: %s", index, exc.details)
                results.append(BatchItemOutcome(index=index, error=exc))
                continue
            results.append(BatchItemOutcome(index=index, outcome=outcome))
        return results

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    # -- internals ----------------------------------------------------------

    def _call_remote(self, request: PredictionRequest) -> PredictionOutcome:
        if self.client is None:
            logger.info("Remote scorer not configured; skipping remote call.")
            return PredictionOutcome(request=request)

        payload = request.remote_payload()
        errors: List[str] = []
        max_attempts = max(1, self.config.max_attempts)

        for attempt in range(1, max_attempts + 1):
            try:
                body = self.client.predict(payload)
                result = normalise_response(body)
            except RemoteRateLimitedError as exc:
                errors.append(f"attempt {attempt}: {exc}")
                if exc.bot_challenge:
                    return PredictionOutcome(
                        request     = request,
                        overloaded  = True,
                        retry_after = (
                            exc.retry_after
                            if exc.retry_after is not None
                            else self.config.overload_retry_after
                        ),
                        attempts    = attempt,
                        errors      = errors,
                    )
                delay = (
                    exc.retry_after
                    if exc.retry_after is not None
                    else self.config.rate_limit_backoff * attempt
                )
            except RemoteUnavailableError as exc:
                errors.append(f"attempt {attempt}: {exc}")
                if not exc.retryable:
                    return PredictionOutcome(request=request, attempts=attempt, errors=errors)
                delay = self.config.transient_retry_delay
            else:
                if attempt > 1:
                    logger.info("Remote scorer succeeded on attempt %d.", attempt)
                return PredictionOutcome(
                    request  = request,
                    result   = result,
                    attempts = attempt,
                    errors   = errors,
                )

            if attempt == max_attempts:
                break
            logger.warning(
                "Remote scorer attempt %d/%d failed (%s); retrying in %.1fs",
                attempt, max_attempts, errors[-1], delay,
            )
            self.sleep(delay)

        return PredictionOutcome(request=request, attempts=max_attempts, errors=errors)

    def _persist(
        self,
        request: PredictionRequest,
        result: PredictionResult,
        requester: Optional[str],
    ) -> None:
        if self.persist is None:
            return
        try:
            self.persist(request, result, requester)
        except Exception as exc:
            logger.error(
                "Failed to persist clinical record for patient=%s: %s",
                request.patient_id, exc, exc_info=True,
            )
