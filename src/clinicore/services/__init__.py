"""Appointment services: cache-aside listing reads and status changes."""

from clinicore.services.listing import ListingResult, ListingService, ListingSource
from clinicore.services.status_change import StatusChangeService, parse_settled_status

__all__ = [
    "ListingResult",
    "ListingService",
    "ListingSource",
    "StatusChangeService",
    "parse_settled_status",
]
