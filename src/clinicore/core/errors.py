"""Domain errors raised by the clinicore services.

The API layer maps these onto HTTP responses (see clinicore.api.errors).
Cache and notification failures never appear here: they are absorbed by
the component that encountered them.
"""

from __future__ import annotations


class ClinicoreError(Exception):
    """Base class for domain errors."""


class InvalidStatusError(ClinicoreError, ValueError):
    """A status value outside the allowed set was supplied."""

    def __init__(self, value: object, allowed: list[str]):
        self.value = value
        self.allowed = allowed
        super().__init__(f"Invalid status {value!r}. Must be one of: {', '.join(allowed)}")


class AppointmentNotFoundError(ClinicoreError):
    """No appointment (joined with patient and doctor) matches the id."""

    def __init__(self, appointment_id: int):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class DoctorNotFoundError(ClinicoreError):
    def __init__(self, doctor_id: int):
        self.doctor_id = doctor_id
        super().__init__(f"Doctor {doctor_id} not found")


class AppointmentConflictError(ClinicoreError):
    """The appointment was already settled when a guarded transition ran."""

    def __init__(self, appointment_id: int, current_status: str):
        self.appointment_id = appointment_id
        self.current_status = current_status
        super().__init__(f"Appointment {appointment_id} is already {current_status}")


class StoreError(ClinicoreError):
    """The durable store failed to answer a query or apply an update."""


class PresenceUnavailableError(ClinicoreError):
    """Presence cannot be written because the cache is unavailable."""
