"""Payload schemas for the realtime channel and the location endpoint.

Inbound channel messages are envelopes ``{"type": <event>, "data": {...}}``
validated into one model per event type.
"""

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

# Well above any ground or airliner speed; keeps km/h conversion finite
MAX_SPEED_MS = 1000.0


class CoordinatePayload(BaseModel):
    """A latitude/longitude pair in degrees."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class LocationPayload(CoordinatePayload):
    """A browser geolocation fix."""

    accuracy: float | None = Field(
        default=None, ge=0.0, allow_inf_nan=False, description="Accuracy in meters"
    )
    speed: float | None = Field(
        default=None, ge=0.0, le=MAX_SPEED_MS, allow_inf_nan=False, description="Speed in m/s"
    )
    altitude: float | None = Field(default=None, allow_inf_nan=False, description="Altitude in meters")
    timestamp: int | float | str | None = Field(
        default=None,
        description="Client event time (epoch ms or ISO-8601)",
    )

    def coordinates(self) -> dict[str, Any]:
        return self.model_dump(exclude={"timestamp"})


class FeaturePayload(BaseModel):
    feature: str = Field(..., min_length=1, max_length=64)


class DeviceDisconnectedPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: str | int = Field(..., alias="deviceId")


class LocationUpdateEvent(BaseModel):
    type: Literal["locationUpdate"]
    data: LocationPayload


class FeatureUsedEvent(BaseModel):
    type: Literal["feature-used"]
    data: FeaturePayload


class DeviceConnectedEvent(BaseModel):
    type: Literal["device-connected"]
    data: dict[str, Any] = Field(default_factory=dict)


class DeviceDisconnectedEvent(BaseModel):
    type: Literal["device-disconnected"]
    data: DeviceDisconnectedPayload


class DeviceStatusEvent(BaseModel):
    type: Literal["device-status"]
    data: dict[str, Any] = Field(default_factory=dict)


class EnvironmentalDataRequest(BaseModel):
    type: Literal["request-environmental-data"]
    data: CoordinatePayload


class StartTrackingEvent(BaseModel):
    type: Literal["startTracking"]
    data: dict[str, Any] = Field(default_factory=dict)


class StopTrackingEvent(BaseModel):
    type: Literal["stopTracking"]
    data: dict[str, Any] = Field(default_factory=dict)


ClientEvent = Annotated[
    Union[
        LocationUpdateEvent,
        FeatureUsedEvent,
        DeviceConnectedEvent,
        DeviceDisconnectedEvent,
        DeviceStatusEvent,
        EnvironmentalDataRequest,
        StartTrackingEvent,
        StopTrackingEvent,
    ],
    Field(discriminator="type"),
]

client_event_adapter: TypeAdapter[ClientEvent] = TypeAdapter(ClientEvent)


def parse_client_event(raw: str) -> ClientEvent:
    """Validate a raw text frame; raises ``ValidationError`` when malformed."""
    return client_event_adapter.validate_json(raw)


def peek_event_type(raw: str) -> str | None:
    """Best-effort event name of a frame that failed validation."""
    try:
        message = json.loads(raw)
    except ValueError:
        return None
    if isinstance(message, dict) and isinstance(message.get("type"), str):
        return message["type"]
    return None


def describe_validation_error(error: ValidationError) -> str:
    """First validation problem as ``location: message``."""
    errors = error.errors()
    if not errors:
        return "Invalid payload"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid')}" if location else first.get("msg", "invalid")


class LocationResponse(BaseModel):
    """Response of ``POST /api/location``."""

    status: str
    location: dict[str, Any]
    environmental: dict[str, Any]
    timestamp: str


class VisitPayload(BaseModel):
    """Optional beacon body of ``POST /api/track``; unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    page: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")
    country: str | None = None
    city: str | None = None
    viewport: str | None = None
    timezone: str | None = None
    language: str | None = None


def parse_visit_payload(raw: bytes) -> VisitPayload:
    """Lenient body parsing: an empty or malformed body counts as no details."""
    if not raw.strip():
        return VisitPayload()
    try:
        return VisitPayload.model_validate_json(raw)
    except ValidationError:
        return VisitPayload()


class VisitResponse(BaseModel):
    """Response of ``POST /api/track``."""

    success: bool
    visitId: str
    message: str
    timestamp: str
