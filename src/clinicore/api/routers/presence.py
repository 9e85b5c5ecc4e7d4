"""Doctor presence endpoints.

- POST /doctors/{doctor_id}/status   set available | busy | offline
- GET  /doctors/{doctor_id}/status   current status (offline when unknown)
- GET  /doctors/status               status of every doctor
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from clinicore.api.deps import get_presence_store, get_store
from clinicore.core.errors import DoctorNotFoundError
from clinicore.core.models import PresenceStatus
from clinicore.persistence.store import ClinicStore
from clinicore.presence.store import PresenceStore, parse_presence

router = APIRouter(tags=["Presence"])


class StatusUpdate(BaseModel):
    # Plain str so an unknown value is answered with 400, not 422
    status: str


class StatusResponse(BaseModel):
    status: PresenceStatus


class StatusUpdateResponse(StatusResponse):
    success: bool = True


@router.get("/doctors/status", response_model=dict[int, PresenceStatus])
async def get_all_statuses(
    presence: Annotated[PresenceStore, Depends(get_presence_store)],
    store: Annotated[ClinicStore, Depends(get_store)],
) -> dict[int, PresenceStatus]:
    """Presence of every known doctor. All offline when the cache is down."""
    doctor_ids = await store.list_doctor_ids()
    return await presence.get_all_statuses(doctor_ids)


@router.post("/doctors/{doctor_id}/status", response_model=StatusUpdateResponse)
async def set_status(
    doctor_id: Annotated[int, Path()],
    body: StatusUpdate,
    presence: Annotated[PresenceStore, Depends(get_presence_store)],
    store: Annotated[ClinicStore, Depends(get_store)],
) -> StatusUpdateResponse:
    """Set a doctor's presence. Non-offline values expire after 30 minutes."""
    status = parse_presence(body.status)

    doctor = await store.get_doctor(doctor_id)
    if doctor is None:
        raise DoctorNotFoundError(doctor_id)

    event = await presence.set_status(doctor_id, status, doctor_name=doctor.name)
    return StatusUpdateResponse(status=event.status)


@router.get("/doctors/{doctor_id}/status", response_model=StatusResponse)
async def get_status(
    doctor_id: Annotated[int, Path()],
    presence: Annotated[PresenceStore, Depends(get_presence_store)],
) -> StatusResponse:
    return StatusResponse(status=await presence.get_status(doctor_id))
