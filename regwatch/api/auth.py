"""
Authentication for the scheduled trigger endpoint.

The external scheduler presents a shared secret as a bearer token; the request
is rejected before any monitoring work starts unless it matches CRON_SECRET.
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

logger = logging.getLogger(__name__)

# auto_error is disabled so a missing header yields 401 rather than 403
security = HTTPBearer(auto_error=False)


def is_valid_cron_secret(expected: Optional[str], provided: Optional[str]) -> bool:
    """Constant-time comparison; an unset expected secret rejects everything."""
    if not expected or not provided:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


async def verify_cron_secret(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> None:
    """
    Verify the trigger's bearer token against the configured secret.

    Raises:
        HTTPException: 401 if the token is missing or does not match
    """
    expected = request.app.state.settings.cron_secret
    provided = credentials.credentials if credentials else None

    if not is_valid_cron_secret(expected, provided):
        logger.warning("Rejected unauthenticated monitor trigger")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
