"""Write-invalidation path for appointment status changes.

Steps, in order:

1. Read the joined appointment snapshot (doctor, patient, schedule).
2. Update the status in the store.
3. Invalidate the doctor's cached listing.
4. Publish an AppointmentStatusEvent built from the snapshot and new status.

Steps 1-2 are the authoritative mutation and their failures propagate.
Steps 3-4 are best-effort: their failures are logged and never undo the
update or fail the caller. Step 3 always completes before step 4 starts.
"""

from __future__ import annotations

import logging

from clinicore.cache.redis import RedisCache
from clinicore.cache.result import CacheErr
from clinicore.core.errors import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    InvalidStatusError,
)
from clinicore.core.models import SETTLED_STATUSES, AppointmentStatus
from clinicore.events.notifier import EventNotifier
from clinicore.events.schemas import APPOINTMENT_UPDATED, AppointmentStatusEvent
from clinicore.observability.logging import log_context
from clinicore.observability.metrics import record_invalidation
from clinicore.persistence.store import ClinicStore

logger = logging.getLogger(__name__)


def parse_settled_status(value: str | AppointmentStatus) -> AppointmentStatus:
    """Validate a transition target (accepted or rejected)."""
    allowed = sorted(s.value for s in SETTLED_STATUSES)
    try:
        status = AppointmentStatus(value)
    except ValueError:
        raise InvalidStatusError(value, allowed) from None
    if status not in SETTLED_STATUSES:
        raise InvalidStatusError(value, allowed)
    return status


class StatusChangeService:
    """Accepts and rejects appointments."""

    def __init__(
        self,
        store: ClinicStore,
        cache: RedisCache,
        notifier: EventNotifier,
        topic: str = APPOINTMENT_UPDATED,
        guard_settled: bool = False,
    ):
        self.store = store
        self.cache = cache
        self.notifier = notifier
        self.topic = topic
        self.guard_settled = guard_settled

    async def accept(self, appointment_id: int) -> AppointmentStatusEvent:
        return await self.apply_status_change(appointment_id, AppointmentStatus.ACCEPTED)

    async def reject(self, appointment_id: int) -> AppointmentStatusEvent:
        return await self.apply_status_change(appointment_id, AppointmentStatus.REJECTED)

    async def apply_status_change(
        self, appointment_id: int, new_status: str | AppointmentStatus
    ) -> AppointmentStatusEvent:
        """Apply a status change and return the event that was published.

        Raises:
            InvalidStatusError: new_status is not accepted/rejected
            AppointmentNotFoundError: no such appointment
            AppointmentConflictError: guard enabled and appointment already settled
            StoreError: the store read or update failed
        """
        status = parse_settled_status(new_status)

        snapshot = await self.store.get_appointment_detail(appointment_id)
        if snapshot is None:
            raise AppointmentNotFoundError(appointment_id)

        with log_context(doctor_id=snapshot.doctor_id, appointment_id=appointment_id):
            updated = await self.store.update_appointment_status(
                appointment_id, status, only_if_pending=self.guard_settled
            )
            if self.guard_settled and not updated:
                current = await self.store.get_appointment_detail(appointment_id)
                if current is None:
                    raise AppointmentNotFoundError(appointment_id)
                raise AppointmentConflictError(appointment_id, current.status.value)

            logger.info(f"Appointment {appointment_id} set to {status.value}")

            await self._invalidate(snapshot.doctor_id)

            event = AppointmentStatusEvent.from_snapshot(snapshot, status)
            await self.notifier.publish(self.topic, event)
            return event

    async def _invalidate(self, doctor_id: int) -> None:
        result = await self.cache.invalidate_listing(doctor_id)
        if isinstance(result, CacheErr):
            logger.warning(f"Cache invalidation failed for doctor {doctor_id}: {result.error}")
            record_invalidation("failed")
        else:
            logger.info(f"Cache INVALIDATED for doctor {doctor_id}")
            record_invalidation("deleted")
