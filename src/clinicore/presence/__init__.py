"""Doctor presence (available / busy / offline) kept in the cache."""

from clinicore.presence.store import PresenceStore, parse_presence

__all__ = ["PresenceStore", "parse_presence"]
