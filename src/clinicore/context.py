"""Service context: connection handles and the components built on them.

Created once at startup and passed explicitly to whatever needs it; no
component reaches for module-level connection globals.

Usage:
    context = ServiceContext.create(settings)
    await context.start()
    listing = await context.listing.get_listing(7)
    await context.close()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from clinicore.cache.redis import RedisCache, close_redis, create_redis_client
from clinicore.config import Settings
from clinicore.events.channel import RedisBroadcastChannel
from clinicore.events.listeners import ListenerRegistry
from clinicore.events.notifier import EventNotifier
from clinicore.events.relay import BroadcastRelay
from clinicore.persistence.db import Database
from clinicore.persistence.store import ClinicStore
from clinicore.presence.store import PresenceStore
from clinicore.services.listing import ListingService
from clinicore.services.status_change import StatusChangeService

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    settings: Settings
    database: Database
    redis: Redis | None
    cache: RedisCache
    registry: ListenerRegistry
    channel: RedisBroadcastChannel
    notifier: EventNotifier
    store: ClinicStore
    listing: ListingService
    status_changes: StatusChangeService
    presence: PresenceStore
    relay: BroadcastRelay | None = field(default=None)

    @classmethod
    def create(
        cls,
        settings: Settings,
        database: Database | None = None,
        redis: Redis | None = None,
    ) -> ServiceContext:
        """Wire all components from settings.

        `database` and `redis` may be supplied to reuse existing handles.
        """
        database = database or Database.from_settings(settings)
        if redis is None:
            redis = create_redis_client(settings.redis_url, settings.redis_socket_timeout)

        cache = RedisCache(redis)
        registry = ListenerRegistry()
        channel = RedisBroadcastChannel(redis, enabled=settings.broadcast_enabled)
        notifier = EventNotifier(channel=channel, registry=registry)
        store = ClinicStore(database)

        relay = None
        if redis is not None and settings.broadcast_enabled:
            relay = BroadcastRelay(
                redis,
                registry,
                topics=[settings.appointment_topic, settings.presence_topic],
                retry_delay_initial=settings.relay_retry_initial,
                retry_delay_max=settings.relay_retry_max,
            )

        return cls(
            settings=settings,
            database=database,
            redis=redis,
            cache=cache,
            registry=registry,
            channel=channel,
            notifier=notifier,
            store=store,
            listing=ListingService(cache, store, ttl=settings.listing_cache_ttl),
            status_changes=StatusChangeService(
                store,
                cache,
                notifier,
                topic=settings.appointment_topic,
                guard_settled=settings.guard_settled_transitions,
            ),
            presence=PresenceStore(
                cache, notifier, ttl=settings.presence_ttl, topic=settings.presence_topic
            ),
            relay=relay,
        )

    async def start(self) -> None:
        """Start background work. Redis problems are logged, not raised.

        Broadcast only reaches local listeners through the relay, so the
        channel stays off until the relay has subscribed.
        """
        if self.relay is None:
            return
        if not await self.relay.start_with_retry(on_started=self._enable_broadcast):
            self.channel.enabled = False
            logger.warning("Broadcast relay not subscribed, using direct delivery meanwhile")

    def _enable_broadcast(self) -> None:
        self.channel.enabled = True
        logger.info("Broadcast relay subscribed, broadcast delivery resumed")

    async def close(self) -> None:
        if self.relay is not None:
            await self.relay.stop()
        await close_redis(self.redis)
        await self.database.close()
