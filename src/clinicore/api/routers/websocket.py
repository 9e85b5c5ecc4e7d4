"""WebSocket endpoint for real-time appointment and presence events.

Clients can subscribe to:
- All events: /events
- One event name: /events?event=appointmentStatusUpdated
- One patient's appointments: /events?patient_id=7
- One doctor: /events?doctor_id=3

Frames are JSON: {"event": "<name>", "data": {...}}
"""

from __future__ import annotations

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from clinicore.api.middleware import correlation_context
from clinicore.events.listeners import ListenerRegistry
from clinicore.observability.logging import log_context

router = APIRouter(tags=["WebSocket"])


@router.websocket("/events")
async def websocket_events(
    websocket: WebSocket,
    event: str | None = Query(default=None, description="Only deliver this event name"),
    patient_id: int | None = Query(default=None, description="Only events for this patient"),
    doctor_id: int | None = Query(default=None, description="Only events for this doctor"),
) -> None:
    registry: ListenerRegistry = websocket.app.state.context.registry
    with (
        correlation_context(websocket.headers, websocket.url.path),
        log_context(doctor_id=doctor_id),
    ):
        listener = await registry.connect(
            websocket,
            event_filter=event,
            patient_filter=patient_id,
            doctor_filter=doctor_id,
        )

        try:
            while True:
                try:
                    # Nothing is expected from clients except pings; reading
                    # is how disconnects are detected.
                    message = await websocket.receive_text()
                    if message == "ping":
                        await websocket.send_text("pong")
                except WebSocketDisconnect:
                    break
        finally:
            await registry.disconnect(listener)
