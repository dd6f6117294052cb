"""
security.py — Shared-secret auth for the scheduler-triggered cron endpoints.

The scheduler sends "Authorization: Bearer <CRON_SECRET>". When no secret is
configured the check is open so local manual runs keep working; that state
is logged as a warning on every call and refused outright in production.

Usage in routes:
    @router.get("/collect-x", dependencies=[Depends(verify_cron_auth)])
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from citytrends.core.config import settings

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def is_authorized(token: Optional[str]) -> bool:
    """Return True if *token* matches the configured cron secret."""
    expected = settings.cron_secret
    if not expected:
        if settings.environment == "production":
            logger.error("CRON_SECRET not set in production — rejecting cron trigger")
            return False
        logger.warning("CRON_SECRET not set — cron endpoints are open to anyone")
        return True
    if not token:
        return False
    return secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def verify_cron_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> None:
    """FastAPI dependency — raise 401 unless the bearer secret is valid."""
    token = credentials.credentials if credentials else None
    if not is_authorized(token):
        raise HTTPException(status_code=401, detail="Unauthorized")
