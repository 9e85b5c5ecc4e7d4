"""clinicore: cache-aside appointment listings, status changes and doctor
presence, with change events broadcast over Redis Pub/Sub or delivered
directly to WebSocket listeners.
"""

__version__ = "0.1.0"
