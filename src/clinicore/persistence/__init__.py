"""Persistence layer: SQLAlchemy async engine, ORM tables, repositories."""

from clinicore.persistence.db import Database
from clinicore.persistence.repositories import AppointmentRepository, DoctorRepository
from clinicore.persistence.store import ClinicStore

__all__ = [
    "Database",
    "AppointmentRepository",
    "DoctorRepository",
    "ClinicStore",
]
