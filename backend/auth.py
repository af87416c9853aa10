"""
auth.py
=======
Bearer-token authentication dependency.

Tokens are HS256 JWTs issued by the identity service; this backend only
verifies them.  The `sub` claim is the requester identity stored on every
clinical record.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def decode_token(token: str, secret: str, algorithm: str) -> str:
    """Return the `sub` claim of a valid token, raising 401 otherwise."""
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from exc

    subject = payload.get("sub") or payload.get("id")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )
    return str(subject)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    settings = request.app.state.settings
    return decode_token(credentials.credentials, settings.jwt_secret, settings.jwt_algorithm)
