"""Registry of connected WebSocket listeners.

Direct delivery target for the event notifier and the broadcast relay:
`emit(event_name, payload)` sends one JSON frame to every matching listener.

Frame format:
{
    "event": "appointmentStatusUpdated",
    "data": {"appointmentId": 42, "patientId": 7, "status": "accepted", ...}
}
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import orjson
from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class Listener:
    """WebSocket connection with optional filters."""

    websocket: WebSocket
    event_filter: str | None = None
    patient_filter: int | None = None
    doctor_filter: int | None = None

    def __hash__(self) -> int:
        return id(self.websocket)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Listener):
            return NotImplemented
        return self.websocket is other.websocket

    def matches(self, event_name: str, payload: dict[str, Any]) -> bool:
        if self.event_filter and self.event_filter != event_name:
            return False
        if self.patient_filter is not None and payload.get("patientId") != self.patient_filter:
            return False
        if self.doctor_filter is not None and payload.get("doctorId") != self.doctor_filter:
            return False
        return True


class ListenerRegistry:
    """Manages WebSocket listeners and in-process event fan-out."""

    def __init__(self) -> None:
        self._listeners: set[Listener] = set()
        self._lock = asyncio.Lock()

    async def connect(
        self,
        websocket: WebSocket,
        event_filter: str | None = None,
        patient_filter: int | None = None,
        doctor_filter: int | None = None,
    ) -> Listener:
        """Accept the WebSocket and register it."""
        await websocket.accept()
        listener = Listener(
            websocket=websocket,
            event_filter=event_filter,
            patient_filter=patient_filter,
            doctor_filter=doctor_filter,
        )
        async with self._lock:
            self._listeners.add(listener)
        logger.info(f"WebSocket connected (total: {len(self._listeners)})")
        return listener

    async def disconnect(self, listener: Listener) -> None:
        async with self._lock:
            self._listeners.discard(listener)
        logger.info(f"WebSocket disconnected (remaining: {len(self._listeners)})")

    async def emit(self, event_name: str, payload: dict[str, Any]) -> int:
        """Send an event to every matching listener.

        Fire-and-forget: a listener that fails to receive is skipped.
        Returns the number of listeners the frame was sent to.
        """
        async with self._lock:
            listeners = list(self._listeners)

        frame = orjson.dumps({"event": event_name, "data": payload})
        sent = 0
        for listener in listeners:
            if not listener.matches(event_name, payload):
                continue
            try:
                await listener.websocket.send_bytes(frame)
                sent += 1
            except Exception as e:
                logger.debug(f"Failed to send to WebSocket: {e}")
        return sent

    @property
    def connection_count(self) -> int:
        return len(self._listeners)
