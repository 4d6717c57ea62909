"""
Ebook Shelf Backend — Health Check Route
==========================================

What:  Health check endpoint for monitoring and load balancer checks.
Why:   Load balancers and Docker need to know whether the service can handle
       traffic end-to-end.
How:   Checks the database (SELECT 1) and the image host (admin ping).

Status levels:
    - healthy:   database and image host reachable
    - degraded:  database reachable, image host unavailable or unconfigured
                 (list/get/delete of cover-less records still work)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request

from app import __version__
from app.config import settings
from app.database import get_database
from app.schemas.ebook import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    db_status = "connected"
    image_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    database = get_database(request)
    try:
        if database is None:
            raise RuntimeError("database not initialized")
        await database.ping()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Image Store ─────────────────────────────────────────────────
    image_store = getattr(request.app.state, "image_store", None)
    if image_store is None or not settings.image_store_configured:
        image_status = "unconfigured"
    elif not await image_store.health_check():
        image_status = "unavailable"
    if image_status != "available" and overall != "unhealthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        image_store=image_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
