"""Realtime tracking channel over WebSocket."""

import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from lightning_tracker.api.deps import client_address
from lightning_tracker.api.schemas import (
    ClientEvent,
    DeviceConnectedEvent,
    DeviceDisconnectedEvent,
    DeviceStatusEvent,
    EnvironmentalDataRequest,
    FeatureUsedEvent,
    LocationUpdateEvent,
    StartTrackingEvent,
    StopTrackingEvent,
    describe_validation_error,
    parse_client_event,
    peek_event_type,
)
from lightning_tracker.core.datetime_utils import from_client_timestamp, isoformat_z, utc_now
from lightning_tracker.core.logging import clear_request_id, get_logger, log_error, set_request_id
from lightning_tracker.core.websocket import ConnectionRegistry, ConnectionState
from lightning_tracker.services.tracking import TrackingService

logger = get_logger(__name__)

router = APIRouter()


class ChannelHandler:
    """Handles the events of one open channel, one at a time."""

    def __init__(
        self,
        state: ConnectionState,
        tracking: TrackingService,
        registry: ConnectionRegistry,
    ) -> None:
        self.state = state
        self.tracking = tracking
        self.registry = registry
        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "locationUpdate": self.on_location_update,
            "feature-used": self.on_feature_used,
            "device-connected": self.on_device_connected,
            "device-disconnected": self.on_device_disconnected,
            "device-status": self.on_device_status,
            "request-environmental-data": self.on_environmental_request,
            "startTracking": self.on_start_tracking,
            "stopTracking": self.on_stop_tracking,
        }

    @property
    def socket_id(self) -> str:
        return self.state.socket_id

    async def handle(self, raw: str) -> None:
        """Validate and dispatch one inbound frame."""
        try:
            event: ClientEvent = parse_client_event(raw)
        except ValidationError as e:
            detail = describe_validation_error(e)
            logger.warning(
                f"Rejected malformed event: {detail}",
                extra={"event_type": "websocket_invalid_event"},
            )
            await self.registry.send(
                self.socket_id,
                "error",
                {"event": peek_event_type(raw), "detail": detail},
            )
            return

        try:
            await self._handlers[event.type](event)
        except Exception as e:
            log_error(
                logger,
                f"Handler for {event.type} failed",
                error=e,
                extra={"event_type": "websocket_handler_error"},
            )
            await self.registry.send(
                self.socket_id,
                "error",
                {"event": event.type, "detail": "Internal error"},
            )

    async def on_location_update(self, event: LocationUpdateEvent) -> None:
        location = event.data
        coordinates = location.coordinates()
        self.state.last_location = coordinates

        reading = await self.tracking.environment.fetch(location.latitude, location.longitude)
        environmental = reading.to_payload()

        if self.state.session_id is not None:
            await self.tracking.ingestor.record_location(
                self.socket_id,
                coordinates,
                environmental,
                from_client_timestamp(location.timestamp),
            )

        await self.registry.broadcast(
            "user-location-update",
            {"socketId": self.socket_id, **location.model_dump(), "environmental": environmental},
            exclude=self.socket_id,
        )
        await self.registry.send(
            self.socket_id,
            "location-received",
            {
                "status": "success",
                "timestamp": isoformat_z(utc_now()),
                "environmental": environmental,
            },
        )

    async def on_feature_used(self, event: FeatureUsedEvent) -> None:
        logger.info(f"Feature used: {event.data.feature}", extra={"event_type": "feature_used"})
        if self.state.session_id is not None:
            await self.tracking.analytics.apply_feature_toggle(self.state.session_id, event.data.feature)

    async def on_device_connected(self, event: DeviceConnectedEvent) -> None:
        await self.registry.broadcast(
            "device-joined",
            {"socketId": self.socket_id, "deviceInfo": event.data},
            exclude=self.socket_id,
        )

    async def on_device_disconnected(self, event: DeviceDisconnectedEvent) -> None:
        await self.registry.broadcast(
            "device-left",
            {"socketId": self.socket_id, "deviceId": event.data.device_id},
            exclude=self.socket_id,
        )

    async def on_device_status(self, event: DeviceStatusEvent) -> None:
        await self.registry.broadcast(
            "device-status-update",
            {**event.data, "socketId": self.socket_id},
            exclude=self.socket_id,
        )

    async def on_environmental_request(self, event: EnvironmentalDataRequest) -> None:
        reading = await self.tracking.environment.fetch(event.data.latitude, event.data.longitude)
        await self.registry.send(self.socket_id, "environmental-data", reading.to_payload())

    async def on_start_tracking(self, event: StartTrackingEvent) -> None:
        self.state.is_tracking = True

    async def on_stop_tracking(self, event: StopTrackingEvent) -> None:
        self.state.is_tracking = False


@router.websocket("/ws")
async def tracking_channel(websocket: WebSocket) -> None:
    """Open → receive events until the client goes away → closed."""
    tracking: TrackingService = websocket.app.state.tracking
    registry: ConnectionRegistry = websocket.app.state.registry

    await websocket.accept()
    socket_id = uuid.uuid4().hex
    set_request_id(socket_id)

    state = ConnectionState(socket_id=socket_id, websocket=websocket)
    registry.add(state)
    logger.info(
        "WebSocket connected",
        extra={"event_type": "websocket_connected", "total_connections": len(registry)},
    )

    state.session_id = await tracking.sessions.open_session(
        socket_id,
        websocket.headers.get("user-agent"),
        client_address(websocket),
    )
    await registry.send(socket_id, "connected", {"socketId": socket_id, "sessionId": state.session_id})

    handler = ChannelHandler(state, tracking, registry)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            await handler.handle(raw)
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected", extra={"event_type": "websocket_disconnected"})
    except Exception as e:
        log_error(logger, "WebSocket error", error=e, extra={"event_type": "websocket_error"})
    finally:
        registry.remove(socket_id)
        if state.session_id is not None:
            await tracking.sessions.close_session(socket_id)
        await registry.broadcast("user-disconnected", {"socketId": socket_id})
        logger.info(
            "Channel closed",
            extra={"event_type": "websocket_closed", "total_connections": len(registry)},
        )
        clear_request_id()
