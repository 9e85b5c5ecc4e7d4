"""Relay from the Redis broadcast channel to local WebSocket listeners.

Every clinicore instance subscribes to the event topics. Events published on
the broadcast channel by any instance are re-emitted to this instance's
ListenerRegistry under the topic-derived event name, so connected clients
see the change no matter which instance handled the write.

If the subscription fails at startup, start_with_retry keeps trying in the
background with exponential backoff and calls `on_started` once it succeeds.

Example:
    relay = BroadcastRelay(client, registry, topics=["appointment:updated"])
    await relay.start_with_retry(on_started=lambda: print("subscribed"))
    ...
    await relay.stop()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import orjson

from clinicore.events.listeners import ListenerRegistry
from clinicore.events.schemas import event_name_for_topic

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from redis.asyncio.client import PubSub

logger = logging.getLogger(__name__)


class BroadcastRelay:
    """Subscribes to broadcast topics and forwards messages to listeners."""

    def __init__(
        self,
        client: Redis,
        registry: ListenerRegistry,
        topics: list[str],
        retry_delay_initial: float = 1.0,
        retry_delay_max: float = 60.0,
        retry_delay_multiplier: float = 2.0,
    ):
        self.client = client
        self.registry = registry
        self.topics = topics
        self.retry_delay_initial = retry_delay_initial
        self.retry_delay_max = retry_delay_max
        self.retry_delay_multiplier = retry_delay_multiplier
        self._retry_task: asyncio.Task[None] | None = None
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._pubsub: PubSub | None = None

    async def start(self) -> None:
        """Start listening. Raises if Redis cannot be subscribed to."""
        if self._running:
            return

        pubsub = self.client.pubsub()
        try:
            await pubsub.subscribe(*self.topics)
        except Exception:
            await self._close_pubsub(pubsub)
            raise
        self._pubsub = pubsub

        self._running = True
        self._task = asyncio.create_task(self._listen_loop())
        logger.info(f"Started broadcast relay on {', '.join(self.topics)}")

    @property
    def running(self) -> bool:
        return self._running

    async def start_with_retry(self, on_started: Callable[[], None] | None = None) -> bool:
        """Start listening, or keep retrying in the background.

        Returns True when subscribed now. Otherwise a retry task is started and
        `on_started` is called once a later attempt subscribes.
        """
        try:
            await self.start()
        except Exception as e:
            logger.warning(f"Broadcast relay subscribe failed: {e}")
            if self._retry_task is None or self._retry_task.done():
                self._retry_task = asyncio.create_task(self._retry_loop(on_started))
            return False
        return True

    async def _retry_loop(self, on_started: Callable[[], None] | None) -> None:
        """Background subscribe attempts with exponential backoff."""
        delay = self.retry_delay_initial
        attempts = 0
        while not self._running:
            await asyncio.sleep(delay)
            attempts += 1
            try:
                await self.start()
            except Exception as e:
                delay = min(delay * self.retry_delay_multiplier, self.retry_delay_max)
                logger.warning(
                    f"Relay subscribe attempt {attempts} failed, retrying in {delay:.1f}s: {e}"
                )
                continue
            logger.info(f"Broadcast relay subscribed after {attempts} retries")
            if on_started is not None:
                on_started()

    async def stop(self) -> None:
        self._running = False

        if self._retry_task:
            self._retry_task.cancel()
            try:
                await self._retry_task
            except asyncio.CancelledError:
                pass
            self._retry_task = None

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._pubsub:
            try:
                await self._pubsub.unsubscribe(*self.topics)
            except Exception as e:
                logger.warning(f"Error closing relay subscription: {e}")
            await self._close_pubsub(self._pubsub)
            self._pubsub = None

        logger.info("Stopped broadcast relay")

    async def _close_pubsub(self, pubsub: PubSub) -> None:
        try:
            await pubsub.aclose()
        except Exception as e:
            logger.warning(f"Error closing relay connection: {e}")

    async def _listen_loop(self) -> None:
        while self._running and self._pubsub:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )

                if message is None:
                    continue

                if message["type"] == "message":
                    await self.handle_message(message["channel"], message["data"])

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in broadcast relay: {e}")
                await asyncio.sleep(1)

    async def handle_message(self, channel: bytes | str, data: bytes | str) -> None:
        """Forward one broadcast message to local listeners."""
        topic = channel.decode() if isinstance(channel, bytes) else channel
        try:
            payload: dict[str, Any] = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            logger.error(f"Discarding malformed message on {topic}: {e}")
            return

        sent = await self.registry.emit(event_name_for_topic(topic), payload)
        logger.debug(f"Relayed {topic} to {sent} listeners")
