"""API routers for clinicore."""

from clinicore.api.routers import appointments, health, metrics, presence, websocket

__all__ = [
    "appointments",
    "health",
    "metrics",
    "presence",
    "websocket",
]
