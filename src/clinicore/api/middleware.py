"""Correlation context middleware for request tracing.

Propagates request and correlation IDs to logging and response headers, and
binds the doctor or appointment named in the path (`/doctors/3/...`,
`/appointments/42/...`) so every log line of the request carries it.

WebSocket connections bypass HTTP middleware; the /events route enters
`correlation_context` itself.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from clinicore.observability.logging import correlation_id_var, log_context, request_id_var

_CLINIC_PATH = re.compile(r"^/(doctors|appointments)/(\d+)(?:/|$)")


def clinic_ids_from_path(path: str) -> dict[str, int]:
    """Doctor or appointment id addressed by a request path."""
    match = _CLINIC_PATH.match(path)
    if match is None:
        return {}
    key = "doctor_id" if match.group(1) == "doctors" else "appointment_id"
    return {key: int(match.group(2))}


@contextmanager
def correlation_context(headers: Mapping[str, str], path: str) -> Iterator[tuple[str, str]]:
    """Bind request, correlation and clinic ids for the duration of a request.

    Yields (request_id, correlation_id).
    """
    request_id = headers.get("x-request-id") or str(uuid.uuid4())
    correlation_id = headers.get("x-correlation-id") or request_id

    request_token = request_id_var.set(request_id)
    correlation_token = correlation_id_var.set(correlation_id)
    try:
        with log_context(**clinic_ids_from_path(path)):
            yield request_id, correlation_id
    finally:
        request_id_var.reset(request_token)
        correlation_id_var.reset(correlation_token)


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Extracts or generates correlation IDs.

    Headers:
    - x-request-id: Unique ID for this request
    - x-correlation-id: ID for tracking across services (passed through)
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        with correlation_context(request.headers, request.url.path) as (
            request_id,
            correlation_id,
        ):
            request.state.request_id = request_id
            request.state.correlation_id = correlation_id

            response = await call_next(request)

            response.headers["x-request-id"] = request_id
            response.headers["x-correlation-id"] = correlation_id
            return response
