"""HTTP and WebSocket surface for clinicore."""
