"""Error responses for the clinicore API.

Every error body uses the same Result/Message envelope:

    {"messages": [{"code": "NotFound", "messageType": "Error",
                   "text": "...", "timestamp": "..."}]}
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from clinicore.core.errors import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    ClinicoreError,
    DoctorNotFoundError,
    InvalidStatusError,
    PresenceUnavailableError,
    StoreError,
)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    model_config = {"extra": "forbid"}

    messages: list[Message]


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_result(self) -> Result:
        return Result(
            messages=[
                Message(
                    code=self.code,
                    messageType=self.message_type,
                    text=self.text,
                    timestamp=datetime.now(UTC).isoformat(),
                )
            ]
        )


class NotFoundError(ApiError):
    """Resource not found (404)."""

    def __init__(self, text: str):
        super().__init__(status_code=404, code="NotFound", text=text)


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="BadRequest", text=text)


class ConflictError(ApiError):
    """State conflict (409)."""

    def __init__(self, text: str):
        super().__init__(status_code=409, code="Conflict", text=text)


class ServiceUnavailableError(ApiError):
    """A required backing service is down (503)."""

    def __init__(self, text: str):
        super().__init__(status_code=503, code="ServiceUnavailable", text=text)


class InternalServerError(ApiError):
    """Internal server error (500)."""

    def __init__(self, text: str = "An unexpected error occurred"):
        super().__init__(
            status_code=500,
            code="InternalServerError",
            text=text,
            message_type=MessageType.EXCEPTION,
        )


def to_api_error(exc: ClinicoreError) -> ApiError:
    """Map a domain error onto its HTTP counterpart."""
    if isinstance(exc, (AppointmentNotFoundError, DoctorNotFoundError)):
        return NotFoundError(str(exc))
    if isinstance(exc, InvalidStatusError):
        return BadRequestError(str(exc))
    if isinstance(exc, AppointmentConflictError):
        return ConflictError(str(exc))
    if isinstance(exc, PresenceUnavailableError):
        return ServiceUnavailableError("Redis unavailable")
    if isinstance(exc, StoreError):
        return InternalServerError(str(exc))
    return InternalServerError()


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def domain_exception_handler(request: Request, exc: ClinicoreError) -> JSONResponse:
    return await api_exception_handler(request, to_api_error(exc))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    return await api_exception_handler(request, InternalServerError())
