"""
errors.py
=========
Exception taxonomy for the prediction pipeline.

  PredictionValidationError : bad input, user-correctable (HTTP 400)
  RemoteUnavailableError    : network failure, timeout, bad response (→ fallback)
  RemoteRateLimitedError    : HTTP 429 from the remote scorer (→ backoff / overload)
  PersistenceError          : record could not be saved (logged, never fatal)
"""

from __future__ import annotations

from typing import Dict, Optional


class TriageError(Exception):
    """Base class for all prediction pipeline errors."""


class PredictionValidationError(TriageError):
    """Raised before any remote call when the request is malformed."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RemoteUnavailableError(TriageError):
    """The remote scorer could not produce a usable answer."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class RemoteRateLimitedError(TriageError):
    """
    The remote scorer answered 429.

    `bot_challenge` is set when the body was HTML instead of JSON, i.e. the
    service sits behind a bot-mitigation page and is refusing automated traffic.
    """

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        bot_challenge: bool = False,
    ):
        super().__init__(message)
        self.retry_after = retry_after
        self.bot_challenge = bot_challenge


class PersistenceError(TriageError):
    """Raised by the storage layer when a write fails."""
