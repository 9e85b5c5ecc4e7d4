"""Repository pattern for clinic persistence.

Repositories run parameterised statements on a session they are given and
return domain models. They do not commit; the caller owns the transaction.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import case, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from clinicore.core.models import (
    Appointment,
    AppointmentDetail,
    AppointmentStatus,
    Doctor,
)
from clinicore.persistence.tables import AppointmentTable, DoctorTable, PatientTable


class BaseRepository:
    """Base repository holding the session."""

    def __init__(self, session: AsyncSession):
        self.session = session


class AppointmentRepository(BaseRepository):
    """Appointment reads and status updates."""

    async def list_for_doctor(self, doctor_id: int) -> list[Appointment]:
        """All appointments for a doctor, pending first, then chronological."""
        pending_first = case(
            (AppointmentTable.status == AppointmentStatus.PENDING.value, 0),
            else_=1,
        )
        stmt = (
            select(AppointmentTable, PatientTable.name.label("patient_name"))
            .join(PatientTable, AppointmentTable.patient_id == PatientTable.id)
            .where(AppointmentTable.doctor_id == doctor_id)
            .order_by(
                pending_first,
                AppointmentTable.appointment_date,
                AppointmentTable.start_time,
            )
        )
        result = await self.session.execute(stmt)
        return [_to_appointment(row, patient_name) for row, patient_name in result.all()]

    async def get_detail(self, appointment_id: int) -> AppointmentDetail | None:
        """Appointment joined with its patient and doctor, or None."""
        stmt = (
            select(
                AppointmentTable,
                PatientTable.name.label("patient_name"),
                DoctorTable.name.label("doctor_name"),
                DoctorTable.specialization,
            )
            .join(PatientTable, AppointmentTable.patient_id == PatientTable.id)
            .join(DoctorTable, AppointmentTable.doctor_id == DoctorTable.id)
            .where(AppointmentTable.id == appointment_id)
        )
        result = await self.session.execute(stmt)
        found = result.first()
        if found is None:
            return None

        row, patient_name, doctor_name, specialization = found
        return AppointmentDetail(
            **_appointment_fields(row, patient_name),
            doctor_name=doctor_name,
            specialization=specialization,
        )

    async def update_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        only_if_pending: bool = False,
    ) -> bool:
        """Set the status column. Returns True if a row was updated.

        With `only_if_pending`, the update applies only to appointments that
        are still pending.
        """
        stmt = (
            update(AppointmentTable)
            .where(AppointmentTable.id == appointment_id)
            .values(status=status.value)
        )
        if only_if_pending:
            stmt = stmt.where(AppointmentTable.status == AppointmentStatus.PENDING.value)
        result: CursorResult[Any] = await self.session.execute(stmt)  # type: ignore[assignment]
        return result.rowcount > 0


class DoctorRepository(BaseRepository):
    """Doctor lookups."""

    async def list_ids(self) -> list[int]:
        result = await self.session.execute(select(DoctorTable.id).order_by(DoctorTable.id))
        return list(result.scalars().all())

    async def get(self, doctor_id: int) -> Doctor | None:
        row = await self.session.get(DoctorTable, doctor_id)
        if row is None:
            return None
        return Doctor(id=row.id, name=row.name, specialization=row.specialization)


def _appointment_fields(row: AppointmentTable, patient_name: str | None) -> dict[str, Any]:
    return {
        "id": row.id,
        "doctor_id": row.doctor_id,
        "patient_id": row.patient_id,
        "patient_name": patient_name,
        "status": AppointmentStatus(row.status),
        "appointment_date": row.appointment_date,
        "start_time": row.start_time,
        "end_time": row.end_time,
    }


def _to_appointment(row: AppointmentTable, patient_name: str | None) -> Appointment:
    return Appointment(**_appointment_fields(row, patient_name))
