"""Health check endpoints for clinicore.

- /health/live  - Liveness probe (always OK while the process runs)
- /health/ready - Readiness probe (database required, Redis optional)
- /health       - Full report

The service keeps serving without Redis, so a Redis outage reports
`degraded` (200) rather than `unhealthy`.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from clinicore.api.deps import ContextDep

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 5.0


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def check_component(
    name: str,
    probe: Callable[[], Awaitable[bool]],
    failure_status: HealthStatus = HealthStatus.UNHEALTHY,
) -> ComponentHealth:
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(probe(), timeout=CHECK_TIMEOUT)
        message = None if healthy else f"{name} check failed"
    except asyncio.TimeoutError:
        healthy = False
        message = f"{name} check timed out"
    latency = (time.monotonic() - start) * 1000
    return ComponentHealth(
        name=name,
        status=HealthStatus.HEALTHY if healthy else failure_status,
        latency_ms=latency,
        message=message,
    )


def overall_status(components: list[ComponentHealth]) -> HealthStatus:
    if any(c.status == HealthStatus.UNHEALTHY for c in components):
        return HealthStatus.UNHEALTHY
    if any(c.status == HealthStatus.DEGRADED for c in components):
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


@router.get("/health/live")
async def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
@router.get("/health")
async def ready(context: ContextDep) -> JSONResponse:
    """Report database and Redis state. 503 only when the database is down."""
    components = list(
        await asyncio.gather(
            check_component("database", context.database.health_check),
            check_component(
                "redis", context.cache.health_check, failure_status=HealthStatus.DEGRADED
            ),
        )
    )
    status = overall_status(components)
    return JSONResponse(
        content={
            "status": status.value,
            "components": [c.to_dict() for c in components],
            "listeners": context.registry.connection_count,
        },
        status_code=503 if status == HealthStatus.UNHEALTHY else 200,
    )
