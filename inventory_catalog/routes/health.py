"""
Inventory Catalog Backend — Health Check Route
===============================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Probes both stores with lightweight checks and reports each status.
Who:   Docker health checks, load balancers, monitoring.

Status levels:
    - healthy:   record store reachable and asset store writable (HTTP 200)
    - unhealthy: either store down (HTTP 503, stop routing traffic)

    Both stores are critical: without the database nothing works, and without
    a writable asset store creates/replaces with photos fail.
"""

import logging
import time

from fastapi import APIRouter, Depends, Response

from inventory_catalog import __version__
from inventory_catalog.dependencies import get_inventory_service
from inventory_catalog.schemas.inventory import HealthResponse
from inventory_catalog.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "A store is unavailable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(
    response: Response,
    service: InventoryService = Depends(get_inventory_service),
) -> HealthResponse:
    """
    Check the health of the service and both stores.

    Check details:
        Database: SELECT 1 through the record store
        Storage:  storage root exists and is writable
    """
    db_status = "connected"
    storage_status = "writable"
    overall = "healthy"

    if not await service.records.health_check():
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable")

    try:
        storage_ok = await service.assets.health_check()
    except OSError as e:
        logger.warning("Health check: storage probe failed: %s", str(e))
        storage_ok = False
    if not storage_ok:
        storage_status = "unavailable"
        overall = "unhealthy"
        logger.warning("Health check: asset storage not writable")

    if overall != "healthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
