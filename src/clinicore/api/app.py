"""FastAPI application factory for clinicore.

Creates the application with:
- Appointment listing and status-change endpoints
- Doctor presence endpoints
- WebSocket for real-time events
- Health and Prometheus metrics endpoints
- Lifecycle management for database, Redis and the broadcast relay
- Consistent error bodies for domain and unexpected errors
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from clinicore.api.errors import (
    ApiError,
    api_exception_handler,
    domain_exception_handler,
    generic_exception_handler,
)
from clinicore.api.middleware import CorrelationMiddleware
from clinicore.api.routers import appointments, health, metrics, presence, websocket
from clinicore.config import Settings, settings
from clinicore.context import ServiceContext
from clinicore.core.errors import ClinicoreError
from clinicore.observability import configure_logging
from clinicore.observability.metrics import MetricsMiddleware, get_metrics

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings | None = None,
    context: ServiceContext | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use (defaults to environment settings)
        context: Pre-built ServiceContext; when given, the app uses it as-is
            and leaves its lifecycle to the caller
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if context is not None:
            app.state.context = context
            yield
            return

        configure_logging(
            json_format=app_settings.env != "dev",
            level=app_settings.log_level,
        )
        get_metrics()

        logger.info(f"Starting clinicore ({app_settings.env})")
        service_context = ServiceContext.create(app_settings)
        await service_context.start()
        app.state.context = service_context
        logger.info("clinicore startup complete")

        yield

        logger.info("Shutting down clinicore")
        await service_context.close()
        logger.info("clinicore shutdown complete")

    app = FastAPI(
        title="clinicore",
        description="Appointment listing cache, status changes and presence with live events",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_middleware(CorrelationMiddleware)
    if app_settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(ClinicoreError, cast(ExceptionHandler, domain_exception_handler))
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(appointments.router)
    app.include_router(presence.router)
    app.include_router(websocket.router)
    app.include_router(health.router)
    app.include_router(metrics.router)

    return app
