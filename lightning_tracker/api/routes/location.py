"""Location submission endpoint."""

from fastapi import APIRouter, Depends

from lightning_tracker.api.deps import get_tracking_service
from lightning_tracker.api.schemas import LocationPayload, LocationResponse
from lightning_tracker.core.datetime_utils import isoformat_z, utc_now
from lightning_tracker.core.logging import get_logger
from lightning_tracker.services.tracking import TrackingService

logger = get_logger(__name__)

router = APIRouter()


@router.post("/location", response_model=LocationResponse)
async def submit_location(
    location: LocationPayload,
    tracking: TrackingService = Depends(get_tracking_service),
) -> LocationResponse:
    """Echo a location back with the environmental reading for it.

    HTTP submissions have no channel and therefore no session, so nothing
    is persisted here.
    """
    logger.info("Location received over HTTP", extra={"event_type": "http_location"})
    reading = await tracking.environment.fetch(location.latitude, location.longitude)
    return LocationResponse(
        status="success",
        location=location.model_dump(),
        environmental=reading.to_payload(),
        timestamp=isoformat_z(utc_now()),
    )
