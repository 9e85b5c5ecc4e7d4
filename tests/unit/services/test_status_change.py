"""Tests for appointment status changes.

Covers the write path: update, then invalidate the doctor's listing, then
publish the change event, with cache and notification failures absorbed.
"""

from __future__ import annotations

from typing import Any

import pytest

from clinicore.core.errors import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    InvalidStatusError,
    StoreError,
)
from clinicore.core.models import AppointmentStatus
from clinicore.events.schemas import APPOINTMENT_UPDATED
from clinicore.observability.logging import clinic_ids
from clinicore.services.listing import ListingService
from clinicore.services.status_change import StatusChangeService, parse_settled_status
from tests.fakes import FakeCache, FakeStore, RecordingNotifier


@pytest.fixture
def service(
    fake_store: FakeStore, fake_cache: FakeCache, notifier: RecordingNotifier
) -> StatusChangeService:
    return StatusChangeService(fake_store, fake_cache, notifier)  # type: ignore[arg-type]


class TestParseSettledStatus:
    def test_accepts_settled_values(self) -> None:
        assert parse_settled_status("accepted") == AppointmentStatus.ACCEPTED
        assert parse_settled_status(AppointmentStatus.REJECTED) == AppointmentStatus.REJECTED

    @pytest.mark.parametrize("value", ["pending", "cancelled", "", "ACCEPTED"])
    def test_rejects_other_values(self, value: str) -> None:
        with pytest.raises(InvalidStatusError) as exc_info:
            parse_settled_status(value)
        assert exc_info.value.allowed == ["accepted", "rejected"]


class TestApplyStatusChange:
    @pytest.mark.asyncio
    async def test_accept_updates_store(
        self, service: StatusChangeService, fake_store: FakeStore
    ) -> None:
        await service.accept(42)
        assert fake_store.appointments[42].status == AppointmentStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_reject_updates_store(
        self, service: StatusChangeService, fake_store: FakeStore
    ) -> None:
        await service.reject(42)
        assert fake_store.appointments[42].status == AppointmentStatus.REJECTED

    @pytest.mark.asyncio
    async def test_publish_sees_clinic_ids(
        self, fake_store: FakeStore, fake_cache: FakeCache
    ) -> None:
        seen: list[dict[str, int]] = []

        class ContextNotifier(RecordingNotifier):
            async def publish(self, topic: str, event: Any) -> Any:
                seen.append(clinic_ids())
                return await super().publish(topic, event)

        service = StatusChangeService(fake_store, fake_cache, ContextNotifier())  # type: ignore

        await service.accept(42)

        assert seen == [{"doctor_id": 3, "appointment_id": 42}]
        assert clinic_ids() == {}

    @pytest.mark.asyncio
    async def test_invalidates_before_publishing(
        self, service: StatusChangeService, call_log: list[str]
    ) -> None:
        await service.accept(42)
        assert call_log == ["invalidate:3", f"publish:{APPOINTMENT_UPDATED}"]

    @pytest.mark.asyncio
    async def test_event_built_from_snapshot(
        self, service: StatusChangeService, notifier: RecordingNotifier
    ) -> None:
        event = await service.accept(42)

        assert notifier.published == [(APPOINTMENT_UPDATED, event)]
        assert event.appointment_id == 42
        assert event.patient_id == 7
        assert event.doctor_id == 3
        assert event.status == AppointmentStatus.ACCEPTED
        assert event.doctor_name == "Dr. Grey"
        assert event.specialization == "Cardiology"

    @pytest.mark.asyncio
    async def test_listing_reflects_change_after_invalidation(
        self, fake_store: FakeStore, fake_cache: FakeCache, service: StatusChangeService
    ) -> None:
        listing = ListingService(fake_cache, fake_store)  # type: ignore[arg-type]
        before = await listing.get_listing(3)
        assert before.appointments[0].status == AppointmentStatus.PENDING

        await service.accept(42)

        after = await listing.get_listing(3)
        assert not after.from_cache
        assert {a.id: a.status for a in after.appointments}[42] == AppointmentStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_other_doctor_listing_untouched(
        self, fake_store: FakeStore, fake_cache: FakeCache, service: StatusChangeService
    ) -> None:
        listing = ListingService(fake_cache, fake_store)  # type: ignore[arg-type]
        await listing.get_listing(5)

        await service.accept(42)

        assert 5 in fake_cache.listings

    @pytest.mark.asyncio
    async def test_settled_appointment_can_change_again(
        self, service: StatusChangeService, fake_store: FakeStore
    ) -> None:
        await service.accept(42)
        await service.reject(42)
        assert fake_store.appointments[42].status == AppointmentStatus.REJECTED


class TestFailures:
    @pytest.mark.asyncio
    async def test_unknown_appointment(
        self, service: StatusChangeService, notifier: RecordingNotifier, call_log: list[str]
    ) -> None:
        with pytest.raises(AppointmentNotFoundError):
            await service.accept(999)
        assert notifier.published == []
        assert call_log == []

    @pytest.mark.asyncio
    async def test_invalid_status_checked_before_store(
        self, service: StatusChangeService, fake_store: FakeStore
    ) -> None:
        with pytest.raises(InvalidStatusError):
            await service.apply_status_change(42, "pending")
        assert fake_store.updates == []

    @pytest.mark.asyncio
    async def test_store_failure_propagates_without_side_effects(
        self,
        service: StatusChangeService,
        fake_store: FakeStore,
        notifier: RecordingNotifier,
        call_log: list[str],
    ) -> None:
        fake_store.fail = True
        with pytest.raises(StoreError):
            await service.accept(42)
        assert call_log == []
        assert notifier.published == []

    @pytest.mark.asyncio
    async def test_cache_down_still_succeeds_and_notifies(
        self,
        service: StatusChangeService,
        fake_cache: FakeCache,
        fake_store: FakeStore,
        notifier: RecordingNotifier,
    ) -> None:
        fake_cache.down = True

        event = await service.accept(42)

        assert fake_store.appointments[42].status == AppointmentStatus.ACCEPTED
        assert notifier.published == [(APPOINTMENT_UPDATED, event)]


class TestGuardedTransitions:
    @pytest.fixture
    def guarded(
        self, fake_store: FakeStore, fake_cache: FakeCache, notifier: RecordingNotifier
    ) -> StatusChangeService:
        return StatusChangeService(
            fake_store, fake_cache, notifier, guard_settled=True  # type: ignore[arg-type]
        )

    @pytest.mark.asyncio
    async def test_pending_appointment_accepted(
        self, guarded: StatusChangeService, fake_store: FakeStore
    ) -> None:
        await guarded.accept(42)
        assert fake_store.appointments[42].status == AppointmentStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_settled_appointment_conflicts(
        self,
        guarded: StatusChangeService,
        fake_store: FakeStore,
        notifier: RecordingNotifier,
    ) -> None:
        with pytest.raises(AppointmentConflictError) as exc_info:
            await guarded.reject(43)

        assert exc_info.value.current_status == "accepted"
        assert fake_store.appointments[43].status == AppointmentStatus.ACCEPTED
        assert notifier.published == []
