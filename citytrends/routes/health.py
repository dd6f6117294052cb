"""
Health check endpoint.

Used by the container HEALTHCHECK and by the scheduler before it fires the
cron jobs. Returns status + DB connectivity so callers can distinguish
between "API down" and "API up but DB unreachable".
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from citytrends.core import database as db_module
from citytrends.core.config import APP_VERSION, settings

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    database: str  # "connected" | "disconnected"
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    Liveness of the API and its database connection.

    HTTP 200 even when the database is disconnected; the cron jobs will
    answer 503 in that state and the read API serves an empty snapshot.
    """
    db_status = "disconnected"
    try:
        # Access via module reference so tests can patch db_module.db_client
        if db_module.db_client.client is not None:
            await db_module.db_client.client.admin.command("ping")
            db_status = "connected"
    except Exception as exc:
        logger.warning("DB ping failed: %s", exc)

    return HealthResponse(
        status="ok",
        version=APP_VERSION,
        database=db_status,
        environment=settings.environment,
    )
