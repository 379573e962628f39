"""Admin endpoints: aggregate counts and session inspection."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, status

from lightning_tracker.api.deps import get_registry, get_tracking_service
from lightning_tracker.core.logging import get_logger
from lightning_tracker.core.websocket import ConnectionRegistry
from lightning_tracker.services.tracking import TrackingService

logger = get_logger(__name__)

router = APIRouter()


@router.get("/analytics")
async def get_analytics(
    tracking: TrackingService = Depends(get_tracking_service),
    registry: ConnectionRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """Counts of sessions, location records and analytics rows."""
    stats = await tracking.get_database_stats()
    return {
        **stats,
        "connectedClients": len(registry),
        "trackingClients": registry.tracking_count,
    }


@router.get("/sessions/active")
async def get_active_sessions(
    tracking: TrackingService = Depends(get_tracking_service),
) -> list[dict[str, Any]]:
    """Active sessions, newest first."""
    result = await tracking.get_active_sessions()
    if not result.ok:
        logger.warning(f"Active sessions unavailable: {result.error}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not connected",
        )
    return result.value or []


@router.get("/sessions/{session_id}")
async def get_session_stats(
    session_id: str = Path(..., min_length=1, max_length=64, description="Session ID"),
    tracking: TrackingService = Depends(get_tracking_service),
) -> dict[str, Any]:
    """One session with its analytics aggregate and location count."""
    result = await tracking.get_session_stats(session_id)
    if not result.ok:
        logger.warning(f"Session stats unavailable: {result.error}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not connected",
        )
    if result.value is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )
    return result.value
