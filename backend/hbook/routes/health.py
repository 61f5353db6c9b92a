"""
Hbook Backend — Health Check Route
===================================

What:  Liveness / readiness probe for load balancers and Docker.
How:   Runs SELECT 1 through the process-wide engine.
Who:   Docker health checks, load balancers, monitoring.

Status levels:
    healthy:    database reachable
    unhealthy:  database unreachable (nothing else can be served)
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from hbook import __version__
from hbook.database import engine
from hbook.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Set once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Reports database connectivity and uptime. No session cookie required.",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
