"""Event notifier with broadcast-first, direct-fallback delivery.

Each publish picks exactly one delivery strategy at call time:

1. BroadcastDelivery, if the broadcast channel reports itself available.
2. DirectDelivery to the in-process listener registry, if the channel is
   unavailable or the broadcast publish fails.

There is no retry and no persistence. An event that neither path can take
is logged and dropped; clients recover by re-reading current state.

Example:
    notifier = EventNotifier(channel=RedisBroadcastChannel(client), registry=registry)
    await notifier.publish("appointment:updated", event)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum

import orjson

from clinicore.events.channel import BroadcastChannel
from clinicore.events.listeners import ListenerRegistry
from clinicore.events.schemas import AnyEvent, event_name_for_topic
from clinicore.observability.metrics import record_event_delivery

logger = logging.getLogger(__name__)


class DeliveryPath(str, Enum):
    """Which path an event took."""

    BROADCAST = "broadcast"
    DIRECT = "direct"
    DROPPED = "dropped"


class EventDelivery(ABC):
    """One way of getting an event to subscribers."""

    path: DeliveryPath

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    async def deliver(self, topic: str, event: AnyEvent) -> None:
        """Deliver the event; raise if it could not be handed off."""


class BroadcastDelivery(EventDelivery):
    path = DeliveryPath.BROADCAST

    def __init__(self, channel: BroadcastChannel | None):
        self.channel = channel

    def is_available(self) -> bool:
        return self.channel is not None and self.channel.is_available()

    async def deliver(self, topic: str, event: AnyEvent) -> None:
        assert self.channel is not None
        await self.channel.publish(topic, orjson.dumps(event.to_payload()))


class DirectDelivery(EventDelivery):
    path = DeliveryPath.DIRECT

    def __init__(self, registry: ListenerRegistry | None):
        self.registry = registry

    def is_available(self) -> bool:
        return self.registry is not None

    async def deliver(self, topic: str, event: AnyEvent) -> None:
        assert self.registry is not None
        await self.registry.emit(event_name_for_topic(topic), event.to_payload())


class EventNotifier:
    """Publishes change events to subscribers."""

    def __init__(
        self,
        channel: BroadcastChannel | None = None,
        registry: ListenerRegistry | None = None,
    ):
        self.broadcast = BroadcastDelivery(channel)
        self.direct = DirectDelivery(registry)

    def select_strategy(self) -> EventDelivery | None:
        """Pick the delivery strategy from current channel availability."""
        if self.broadcast.is_available():
            return self.broadcast
        if self.direct.is_available():
            return self.direct
        return None

    async def publish(self, topic: str, event: AnyEvent) -> DeliveryPath:
        """Publish an event. Never raises."""
        strategy = self.select_strategy()

        if strategy is self.broadcast:
            try:
                await self.broadcast.deliver(topic, event)
                logger.info(f"Published {topic} event {event.event_id} to broadcast channel")
                return self._delivered(topic, DeliveryPath.BROADCAST)
            except Exception as e:
                logger.warning(f"Broadcast publish to {topic} failed, delivering directly: {e}")
                strategy = self.direct if self.direct.is_available() else None

        if strategy is self.direct:
            try:
                await self.direct.deliver(topic, event)
                logger.info(f"Delivered {topic} event {event.event_id} directly to listeners")
                return self._delivered(topic, DeliveryPath.DIRECT)
            except Exception as e:
                logger.error(f"Direct delivery of {topic} failed: {e}")

        logger.warning(f"Dropped {topic} event {event.event_id}: no delivery path available")
        return self._delivered(topic, DeliveryPath.DROPPED)

    def _delivered(self, topic: str, path: DeliveryPath) -> DeliveryPath:
        record_event_delivery(topic, path.value)
        return path
