"""Broadcast channel over Redis Pub/Sub.

The channel reports whether it is usable before each publish. It is
unavailable when no Redis client is configured, when broadcasting is
switched off, or for a short cool-down after a failed publish so that a
dead Redis does not add a socket timeout to every write.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Seconds to route around the channel after a publish failure
DEFAULT_COOLDOWN = 5.0


class BroadcastChannel(ABC):
    """Publish/subscribe channel delivering to every subscriber of a topic."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether a publish should be attempted right now."""

    @abstractmethod
    async def publish(self, topic: str, payload: bytes) -> int:
        """Publish a payload. Returns the subscriber count; raises on failure."""


class RedisBroadcastChannel(BroadcastChannel):
    """Redis PUBLISH-backed broadcast channel."""

    def __init__(
        self,
        client: Redis | None,
        enabled: bool = True,
        cooldown: float = DEFAULT_COOLDOWN,
    ):
        self.client = client
        self.enabled = enabled
        self.cooldown = cooldown
        self._unavailable_until = 0.0

    def is_available(self) -> bool:
        if not self.enabled or self.client is None:
            return False
        return time.monotonic() >= self._unavailable_until

    def mark_unavailable(self) -> None:
        self._unavailable_until = time.monotonic() + self.cooldown

    async def publish(self, topic: str, payload: bytes) -> int:
        if self.client is None:
            raise RuntimeError("Broadcast channel has no Redis client")
        try:
            count = cast(int, await self.client.publish(topic, payload))
        except Exception:
            self.mark_unavailable()
            raise
        logger.debug(f"Published to {topic} ({count} subscribers)")
        return count
