"""Domain models and errors for clinicore."""

from clinicore.core.errors import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    ClinicoreError,
    DoctorNotFoundError,
    InvalidStatusError,
    PresenceUnavailableError,
    StoreError,
)
from clinicore.core.models import (
    SETTLED_STATUSES,
    Appointment,
    AppointmentDetail,
    AppointmentStatus,
    Doctor,
    PresenceStatus,
)

__all__ = [
    "Appointment",
    "AppointmentDetail",
    "AppointmentStatus",
    "Doctor",
    "PresenceStatus",
    "SETTLED_STATUSES",
    "ClinicoreError",
    "InvalidStatusError",
    "AppointmentNotFoundError",
    "DoctorNotFoundError",
    "AppointmentConflictError",
    "StoreError",
    "PresenceUnavailableError",
]
