"""Durable store facade used by the services.

Each method runs in its own transaction and converts database failures into
StoreError, so services deal with one error type for the source of truth.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from clinicore.core.errors import StoreError
from clinicore.core.models import Appointment, AppointmentDetail, AppointmentStatus, Doctor
from clinicore.persistence.repositories import AppointmentRepository, DoctorRepository

if TYPE_CHECKING:
    from clinicore.persistence.db import Database

logger = logging.getLogger(__name__)

_DB_ERRORS = (SQLAlchemyError, OSError)


class ClinicStore:
    """Source of truth for appointments and doctors."""

    def __init__(self, database: Database):
        self.database = database

    async def list_appointments(self, doctor_id: int) -> list[Appointment]:
        try:
            async with self.database.session() as session:
                return await AppointmentRepository(session).list_for_doctor(doctor_id)
        except _DB_ERRORS as e:
            raise StoreError(f"Failed to list appointments for doctor {doctor_id}") from e

    async def get_appointment_detail(self, appointment_id: int) -> AppointmentDetail | None:
        try:
            async with self.database.session() as session:
                return await AppointmentRepository(session).get_detail(appointment_id)
        except _DB_ERRORS as e:
            raise StoreError(f"Failed to read appointment {appointment_id}") from e

    async def update_appointment_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        only_if_pending: bool = False,
    ) -> bool:
        try:
            async with self.database.session() as session:
                return await AppointmentRepository(session).update_status(
                    appointment_id, status, only_if_pending=only_if_pending
                )
        except _DB_ERRORS as e:
            raise StoreError(f"Failed to update appointment {appointment_id}") from e

    async def list_doctor_ids(self) -> list[int]:
        try:
            async with self.database.session() as session:
                return await DoctorRepository(session).list_ids()
        except _DB_ERRORS as e:
            raise StoreError("Failed to list doctors") from e

    async def get_doctor(self, doctor_id: int) -> Doctor | None:
        try:
            async with self.database.session() as session:
                return await DoctorRepository(session).get(doctor_id)
        except _DB_ERRORS as e:
            raise StoreError(f"Failed to read doctor {doctor_id}") from e
