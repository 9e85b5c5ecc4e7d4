"""Event schemas for clinicore.

Change events are immutable, produced once per accepted write and delivered
fire-and-forget. `to_payload()` gives the camelCase wire form shared by the
broadcast channel and direct WebSocket delivery.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from typing import Any, Literal, Union
from uuid import uuid4

from clinicore.core.models import AppointmentDetail, AppointmentStatus, PresenceStatus

APPOINTMENT_UPDATED = "appointment:updated"
DOCTOR_STATUS_CHANGED = "doctor:status:changed"

# Event names used for direct delivery to connected listeners
_EVENT_NAMES = {
    APPOINTMENT_UPDATED: "appointmentStatusUpdated",
    DOCTOR_STATUS_CHANGED: "doctorStatusChanged",
}


def event_name_for_topic(topic: str) -> str:
    """Map a broadcast topic onto its direct-delivery event name.

    Known topics use their established names; anything else is converted to
    lowerCamelCase (``"slot:freed"`` -> ``"slotFreed"``).
    """
    if topic in _EVENT_NAMES:
        return _EVENT_NAMES[topic]
    words = [w for w in re.split(r"[:._\-\s]+", topic) if w]
    if not words:
        return topic
    return words[0].lower() + "".join(w[:1].upper() + w[1:] for w in words[1:])


@dataclass(frozen=True, slots=True)
class AppointmentStatusEvent:
    """An appointment was accepted or rejected.

    Display fields come from the snapshot read before the update.
    """

    appointment_id: int
    patient_id: int
    doctor_id: int
    status: AppointmentStatus
    doctor_name: str
    specialization: str | None
    appointment_date: date
    start_time: time
    end_time: time
    entity: Literal["appointment"] = "appointment"
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_snapshot(
        cls, snapshot: AppointmentDetail, status: AppointmentStatus
    ) -> AppointmentStatusEvent:
        return cls(
            appointment_id=snapshot.id,
            patient_id=snapshot.patient_id,
            doctor_id=snapshot.doctor_id,
            status=status,
            doctor_name=snapshot.doctor_name,
            specialization=snapshot.specialization,
            appointment_date=snapshot.appointment_date,
            start_time=snapshot.start_time,
            end_time=snapshot.end_time,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "eventId": self.event_id,
            "appointmentId": self.appointment_id,
            "patientId": self.patient_id,
            "doctorId": self.doctor_id,
            "status": self.status.value,
            "doctorName": self.doctor_name,
            "specialization": self.specialization,
            "appointmentDate": self.appointment_date.isoformat(),
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class DoctorStatusEvent:
    """A doctor changed presence status."""

    doctor_id: int
    doctor_name: str | None
    status: PresenceStatus
    entity: Literal["presence"] = "presence"
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_payload(self) -> dict[str, Any]:
        return {
            "eventId": self.event_id,
            "doctorId": self.doctor_id,
            "doctorName": self.doctor_name,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }


AnyEvent = Union[AppointmentStatusEvent, DoctorStatusEvent]
