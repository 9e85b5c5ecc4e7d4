"""Shared FastAPI dependencies for clinicore routers.

The ServiceContext built at startup lives on `app.state.context`; these
dependencies hand its components to the endpoints.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from clinicore.context import ServiceContext
from clinicore.events.listeners import ListenerRegistry
from clinicore.persistence.store import ClinicStore
from clinicore.presence.store import PresenceStore
from clinicore.services.listing import ListingService
from clinicore.services.status_change import StatusChangeService


def get_context(connection: HTTPConnection) -> ServiceContext:
    """Works for both HTTP requests and WebSocket connections."""
    return connection.app.state.context  # type: ignore[no-any-return]


ContextDep = Annotated[ServiceContext, Depends(get_context)]


def get_listing_service(context: ContextDep) -> ListingService:
    return context.listing


def get_status_change_service(context: ContextDep) -> StatusChangeService:
    return context.status_changes


def get_presence_store(context: ContextDep) -> PresenceStore:
    return context.presence


def get_store(context: ContextDep) -> ClinicStore:
    return context.store


def get_registry(context: ContextDep) -> ListenerRegistry:
    return context.registry
