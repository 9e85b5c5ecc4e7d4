"""Domain models for appointments and doctor presence.

Appointment records are what the listing cache stores, serialized as a JSON
array with camelCase keys. AppointmentDetail is the joined snapshot taken
before a status change and used to build the change event.
"""

from __future__ import annotations

from datetime import date, time
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AppointmentStatus(str, Enum):
    """Lifecycle state of an appointment."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Targets a doctor may move an appointment to
SETTLED_STATUSES = frozenset({AppointmentStatus.ACCEPTED, AppointmentStatus.REJECTED})


class PresenceStatus(str, Enum):
    """Transient availability of a doctor."""

    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Appointment(_CamelModel):
    """One row of a doctor's appointment listing."""

    id: int
    doctor_id: int
    patient_id: int
    patient_name: str | None = None
    status: AppointmentStatus
    appointment_date: date
    start_time: time
    end_time: time


class AppointmentDetail(Appointment):
    """Appointment joined with its doctor's display fields."""

    doctor_name: str
    specialization: str | None = None


class Doctor(_CamelModel):
    """Doctor identity as needed for presence events."""

    id: int
    name: str
    specialization: str | None = None
