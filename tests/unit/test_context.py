"""Tests for ServiceContext wiring and lifecycle."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from clinicore.config import Settings
from clinicore.context import ServiceContext
from clinicore.core.models import PresenceStatus
from clinicore.events.notifier import DeliveryPath
from clinicore.events.schemas import DoctorStatusEvent


async def idle(**kwargs: object) -> None:
    await asyncio.sleep(0.01)


def make_database() -> MagicMock:
    database = MagicMock()
    database.close = AsyncMock()
    return database


def make_redis(subscribe_error: Exception | None = None) -> MagicMock:
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock(side_effect=subscribe_error)
    pubsub.unsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()
    pubsub.get_message = AsyncMock(side_effect=idle)

    redis = MagicMock()
    redis.pubsub.return_value = pubsub
    redis.aclose = AsyncMock()
    return redis


class TestCreate:
    def test_without_redis(self) -> None:
        context = ServiceContext.create(Settings(REDIS_URL=None), database=make_database())

        assert context.redis is None
        assert context.relay is None
        assert not context.cache.configured
        assert not context.channel.is_available()
        assert context.notifier.select_strategy() is context.notifier.direct

    def test_with_redis(self) -> None:
        context = ServiceContext.create(Settings(), database=make_database(), redis=make_redis())

        assert context.relay is not None
        assert context.relay.topics == ["appointment:updated", "doctor:status:changed"]
        assert context.notifier.select_strategy() is context.notifier.broadcast

    def test_broadcast_disabled(self) -> None:
        context = ServiceContext.create(
            Settings(BROADCAST_ENABLED=False), database=make_database(), redis=make_redis()
        )

        assert context.relay is None
        assert context.notifier.select_strategy() is context.notifier.direct

    def test_settings_flow_into_services(self) -> None:
        settings = Settings(
            LISTING_CACHE_TTL=10, PRESENCE_TTL=60, GUARD_SETTLED_TRANSITIONS=True
        )
        context = ServiceContext.create(settings, database=make_database(), redis=make_redis())

        assert context.listing.ttl == 10
        assert context.presence.ttl == 60
        assert context.status_changes.guard_settled is True


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_relay_failure_falls_back_to_direct(self) -> None:
        context = ServiceContext.create(
            Settings(),
            database=make_database(),
            redis=make_redis(subscribe_error=ConnectionError("refused")),
        )

        await context.start()

        assert context.channel.enabled is False
        assert context.notifier.select_strategy() is context.notifier.direct
        await context.close()

    @pytest.mark.asyncio
    async def test_broadcast_resumes_when_relay_subscribes(self) -> None:
        redis = make_redis()
        redis.pubsub.return_value.subscribe.side_effect = [ConnectionError("refused"), None]
        context = ServiceContext.create(
            Settings(RELAY_RETRY_INITIAL=0.01), database=make_database(), redis=redis
        )

        await context.start()
        assert context.notifier.select_strategy() is context.notifier.direct

        for _ in range(100):
            if context.channel.enabled:
                break
            await asyncio.sleep(0.01)
        await context.close()

        assert context.channel.enabled is True
        assert redis.pubsub.return_value.subscribe.await_count == 2

    @pytest.mark.asyncio
    async def test_start_and_close(self) -> None:
        database = make_database()
        redis = make_redis()
        context = ServiceContext.create(Settings(), database=database, redis=redis)

        await context.start()
        await context.close()

        redis.pubsub.return_value.subscribe.assert_awaited_once()
        redis.aclose.assert_awaited_once()
        database.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_events_without_redis_go_direct(self) -> None:
        context = ServiceContext.create(Settings(REDIS_URL=None), database=make_database())
        event = DoctorStatusEvent(doctor_id=1, doctor_name=None, status=PresenceStatus.BUSY)

        path = await context.notifier.publish(context.settings.presence_topic, event)

        assert path == DeliveryPath.DIRECT
