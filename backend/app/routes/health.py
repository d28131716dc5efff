"""
TaskManager Backend — Health Check Route
========================================

What:  Health check endpoint for monitoring and load balancer health checks.
How:   Runs SELECT 1 against the database; the service has no other
       critical dependency.

Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response

from app import __version__
from app.schemas.lifecycle import HealthResponse
from app.services.transaction import TransactionCoordinator, get_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Returns the health status of the backend service and its database.",
)
async def health_check(
    response: Response,
    coordinator: TransactionCoordinator = Depends(get_coordinator),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await coordinator.ping()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
