"""Tests for doctor presence."""

from __future__ import annotations

import pytest

from clinicore.core.errors import InvalidStatusError, PresenceUnavailableError
from clinicore.core.models import PresenceStatus
from clinicore.events.schemas import DOCTOR_STATUS_CHANGED
from clinicore.presence.store import PresenceStore, parse_presence
from tests.fakes import FakeCache, RecordingNotifier


@pytest.fixture
def presence(fake_cache: FakeCache, notifier: RecordingNotifier) -> PresenceStore:
    return PresenceStore(fake_cache, notifier, ttl=1800)  # type: ignore[arg-type]


class TestParsePresence:
    def test_valid(self) -> None:
        assert parse_presence("busy") == PresenceStatus.BUSY

    def test_invalid(self) -> None:
        with pytest.raises(InvalidStatusError) as exc_info:
            parse_presence("on-holiday")
        assert exc_info.value.allowed == ["available", "busy", "offline"]


class TestSetStatus:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["available", "busy"])
    async def test_active_status_expires(
        self, presence: PresenceStore, fake_cache: FakeCache, status: str
    ) -> None:
        await presence.set_status(3, status)
        assert fake_cache.ttls["doctor:status:3"] == 1800

    @pytest.mark.asyncio
    async def test_offline_has_no_expiry(
        self, presence: PresenceStore, fake_cache: FakeCache
    ) -> None:
        await presence.set_status(3, "busy")
        await presence.set_status(3, "offline")
        assert fake_cache.ttls["doctor:status:3"] is None
        assert fake_cache.presence[3] == b"offline"

    @pytest.mark.asyncio
    async def test_publishes_change(
        self, presence: PresenceStore, notifier: RecordingNotifier
    ) -> None:
        event = await presence.set_status(3, "available", doctor_name="Dr. Grey")

        assert notifier.published == [(DOCTOR_STATUS_CHANGED, event)]
        assert event.doctor_id == 3
        assert event.doctor_name == "Dr. Grey"
        assert event.status == PresenceStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_invalid_status_writes_nothing(
        self, presence: PresenceStore, fake_cache: FakeCache, notifier: RecordingNotifier
    ) -> None:
        with pytest.raises(InvalidStatusError):
            await presence.set_status(3, "lunch")
        assert fake_cache.presence == {}
        assert notifier.published == []

    @pytest.mark.asyncio
    async def test_cache_down_raises(
        self, presence: PresenceStore, fake_cache: FakeCache, notifier: RecordingNotifier
    ) -> None:
        fake_cache.down = True
        with pytest.raises(PresenceUnavailableError):
            await presence.set_status(3, "busy")
        assert notifier.published == []


class TestGetStatus:
    @pytest.mark.asyncio
    async def test_roundtrip(self, presence: PresenceStore) -> None:
        await presence.set_status(3, "busy")
        assert await presence.get_status(3) == PresenceStatus.BUSY

    @pytest.mark.asyncio
    async def test_unknown_doctor_is_offline(self, presence: PresenceStore) -> None:
        assert await presence.get_status(99) == PresenceStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_cache_down_is_offline(
        self, presence: PresenceStore, fake_cache: FakeCache
    ) -> None:
        fake_cache.presence[3] = b"busy"
        fake_cache.down = True
        assert await presence.get_status(3) == PresenceStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_garbage_value_is_offline(
        self, presence: PresenceStore, fake_cache: FakeCache
    ) -> None:
        fake_cache.presence[3] = b"???"
        assert await presence.get_status(3) == PresenceStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_undecodable_bytes_are_offline(
        self, presence: PresenceStore, fake_cache: FakeCache
    ) -> None:
        fake_cache.presence[3] = b"\xff\xfe"
        assert await presence.get_status(3) == PresenceStatus.OFFLINE


class TestGetAllStatuses:
    @pytest.mark.asyncio
    async def test_mixed(self, presence: PresenceStore) -> None:
        await presence.set_status(1, "available")
        await presence.set_status(2, "busy")

        statuses = await presence.get_all_statuses([1, 2, 3])

        assert statuses == {
            1: PresenceStatus.AVAILABLE,
            2: PresenceStatus.BUSY,
            3: PresenceStatus.OFFLINE,
        }

    @pytest.mark.asyncio
    async def test_empty(self, presence: PresenceStore) -> None:
        assert await presence.get_all_statuses([]) == {}

    @pytest.mark.asyncio
    async def test_cache_down_stops_after_first_lookup(
        self, presence: PresenceStore, fake_cache: FakeCache
    ) -> None:
        fake_cache.down = True

        statuses = await presence.get_all_statuses([1, 2, 3])

        assert set(statuses.values()) == {PresenceStatus.OFFLINE}
        assert fake_cache.presence_reads == 1

    @pytest.mark.asyncio
    async def test_unconfigured_cache_skips_lookups(
        self, presence: PresenceStore, fake_cache: FakeCache
    ) -> None:
        fake_cache.configured = False

        statuses = await presence.get_all_statuses([1, 2])

        assert statuses == {1: PresenceStatus.OFFLINE, 2: PresenceStatus.OFFLINE}
        assert fake_cache.presence_reads == 0

    @pytest.mark.asyncio
    async def test_undecodable_entry_does_not_hide_others(
        self, presence: PresenceStore, fake_cache: FakeCache
    ) -> None:
        fake_cache.presence[1] = b"\xff\xfe"
        await presence.set_status(2, "busy")

        statuses = await presence.get_all_statuses([1, 2])

        assert statuses == {1: PresenceStatus.OFFLINE, 2: PresenceStatus.BUSY}
