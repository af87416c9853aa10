"""
remote_client.py
================
Single-shot HTTP client for the remote AI scoring service.

    POST {base_url}/predict
    {"age": 42, "sex": "F", "travel_history": "returned from Lagos"}

Each call either returns the decoded JSON object or raises one of:

  RemoteRateLimitedError  : HTTP 429; carries the retry-after hint (seconds) and
                            whether the body was an HTML bot-mitigation page
  RemoteUnavailableError  : timeout, connection refused, 5xx (retryable) or
                            other 4xx / undecodable body (not retryable)

Retry policy lives in the orchestrator; this module never sleeps.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from risk_engine.errors import RemoteRateLimitedError, RemoteUnavailableError

logger = logging.getLogger(__name__)

_HTML_MARKERS = ("<!doctype html", "<html")


def parse_retry_after(response: requests.Response) -> Optional[float]:
    """Return the retry-after header in seconds, or None if absent/invalid."""
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds < 0 or seconds != seconds:
        return None
    return seconds


def is_html_response(response: requests.Response) -> bool:
    """True when the body is an HTML page rather than structured data."""
    content_type = (response.headers.get("content-type") or "").lower()
    if "json" in content_type:
        return False
    if "text/html" in content_type:
        return True
    try:
        response.json()
    except ValueError:
        pass
    else:
        return False
    head = (response.text or "")[:512].lstrip().lower()
    return any(marker in head for marker in _HTML_MARKERS)


class RemoteScoringClient:
    """Thin wrapper around a requests.Session bound to one base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def predict_url(self) -> str:
        return f"{self.base_url}/predict"

    def predict(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                self.predict_url,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise RemoteUnavailableError(f"Remote scorer timed out: {exc}") from exc
        except requests.ConnectionError as exc:
            raise RemoteUnavailableError(f"Remote scorer unreachable: {exc}") from exc
        except requests.RequestException as exc:
            raise RemoteUnavailableError(f"Remote scorer request failed: {exc}") from exc

        status = response.status_code

        if status == 429:
            bot_challenge = is_html_response(response)
            raise RemoteRateLimitedError(
                "Remote scorer behind bot-mitigation challenge (429 + HTML)."
                if bot_challenge else "Remote scorer rate limited (429).",
                retry_after=parse_retry_after(response),
                bot_challenge=bot_challenge,
            )

        if status >= 500:
            raise RemoteUnavailableError(f"Remote scorer returned HTTP {status}.")

        if status >= 400:
            raise RemoteUnavailableError(
                f"Remote scorer rejected request with HTTP {status}.",
                retryable=False,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteUnavailableError(
                f"Remote scorer returned a non-JSON body (HTTP {status}).",
                retryable=False,
            ) from exc

        if not isinstance(body, dict):
            raise RemoteUnavailableError(
                f"Remote scorer returned {type(body).__name__}, expected an object.",
                retryable=False,
            )
        return body

    def close(self) -> None:
        self.session.close()
