"""Appointment endpoints.

- GET  /doctors/{doctor_id}/appointments      cache-aside listing
- POST /appointments/{appointment_id}/accept  accept and notify
- POST /appointments/{appointment_id}/reject  reject and notify
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from clinicore.api.deps import get_listing_service, get_status_change_service
from clinicore.core.models import Appointment, AppointmentStatus
from clinicore.services.listing import ListingService
from clinicore.services.status_change import StatusChangeService

router = APIRouter(tags=["Appointments"])


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ListingResponse(_Response):
    doctor_id: int
    appointments: list[Appointment]
    from_cache: bool
    source: str
    error: str | None = None


class StatusChangeResponse(_Response):
    success: bool = True
    appointment_id: int
    status: AppointmentStatus
    listing_url: str
    event: dict[str, Any]


@router.get(
    "/doctors/{doctor_id}/appointments",
    response_model=ListingResponse,
    response_model_by_alias=True,
)
async def get_listing(
    doctor_id: Annotated[int, Path(description="Doctor whose appointments to list")],
    service: Annotated[ListingService, Depends(get_listing_service)],
) -> ListingResponse:
    """List a doctor's appointments, pending first, then by date and start time.

    Served from cache when possible. If the store fails the list is empty
    and `error` is set, so the caller can render a degraded view.
    """
    result = await service.get_listing(doctor_id)
    return ListingResponse(
        doctor_id=doctor_id,
        appointments=result.appointments,
        from_cache=result.from_cache,
        source=result.source.value,
        error=result.error,
    )


async def _change_status(
    service: StatusChangeService, appointment_id: int, status: AppointmentStatus
) -> StatusChangeResponse:
    event = await service.apply_status_change(appointment_id, status)
    return StatusChangeResponse(
        appointment_id=appointment_id,
        status=status,
        listing_url=f"/doctors/{event.doctor_id}/appointments",
        event=event.to_payload(),
    )


@router.post(
    "/appointments/{appointment_id}/accept",
    response_model=StatusChangeResponse,
    response_model_by_alias=True,
)
async def accept_appointment(
    appointment_id: Annotated[int, Path()],
    service: Annotated[StatusChangeService, Depends(get_status_change_service)],
) -> StatusChangeResponse:
    """Accept an appointment, invalidate the doctor's listing, notify listeners."""
    return await _change_status(service, appointment_id, AppointmentStatus.ACCEPTED)


@router.post(
    "/appointments/{appointment_id}/reject",
    response_model=StatusChangeResponse,
    response_model_by_alias=True,
)
async def reject_appointment(
    appointment_id: Annotated[int, Path()],
    service: Annotated[StatusChangeService, Depends(get_status_change_service)],
) -> StatusChangeResponse:
    """Reject an appointment, invalidate the doctor's listing, notify listeners."""
    return await _change_status(service, appointment_id, AppointmentStatus.REJECTED)
