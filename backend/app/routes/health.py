"""
NoteKeep Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and reports whether Google
       sign-in is configured.
Who:   Called by Docker health checks, load balancers and monitoring.

Status levels:
    healthy:   database reachable (HTTP 200)
    degraded:  database reachable, Google sign-in not configured (HTTP 200)
    unhealthy: database unreachable (HTTP 503, stop routing traffic)

Google itself is not probed: it is only needed during sign-in, and an
outbound call on every probe would tie our health to theirs.
"""

import logging
import time

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse
from app.services.google_oauth_service import google_oauth_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if google_oauth_service.configured:
        oauth_status = "configured"
    else:
        oauth_status = "not_configured"
        if overall == "healthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        google_oauth=oauth_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
