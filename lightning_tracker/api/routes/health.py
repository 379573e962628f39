"""Health check endpoint."""

import time
from typing import Any

from fastapi import APIRouter, Depends

from lightning_tracker.api.deps import get_registry, get_tracking_service
from lightning_tracker.core.config import settings
from lightning_tracker.core.websocket import ConnectionRegistry
from lightning_tracker.services.tracking import TrackingService

router = APIRouter()


@router.get("/health")
async def health_check(
    tracking: TrackingService = Depends(get_tracking_service),
    registry: ConnectionRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """Liveness plus whether persistence and live weather are in use.

    A disconnected database is reported as ``degraded``, never as a failure:
    the tracker keeps broadcasting without it.
    """
    return {
        "status": "healthy" if tracking.database.is_connected else "degraded",
        "timestamp": time.time(),
        "environment": settings.environment,
        "checks": {
            "database": tracking.db_status,
            "weather": "live" if tracking.environment.is_live else "mock",
        },
        "connections": len(registry),
    }
