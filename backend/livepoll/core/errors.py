"""One error type for the whole service, tagged with a kind that maps to an HTTP status."""
from __future__ import annotations

from enum import Enum

from fastapi import Request, status
from fastapi.responses import JSONResponse


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    UNAUTHENTICATED = "unauthenticated"
    INVALID = "invalid"
    UPSTREAM = "upstream"
    SERIALIZATION = "serialization"


STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UPSTREAM: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.SERIALIZATION: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class PollAppError(Exception):
    def __init__(self, kind: ErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail

    def __repr__(self) -> str:
        return f"PollAppError({self.kind.value!r}, {self.detail!r})"

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @classmethod
    def not_found(cls, detail: str) -> "PollAppError":
        return cls(ErrorKind.NOT_FOUND, detail)

    @classmethod
    def conflict(cls, detail: str) -> "PollAppError":
        return cls(ErrorKind.CONFLICT, detail)

    @classmethod
    def unauthorized(cls, detail: str) -> "PollAppError":
        return cls(ErrorKind.UNAUTHORIZED, detail)

    @classmethod
    def unauthenticated(cls, detail: str) -> "PollAppError":
        return cls(ErrorKind.UNAUTHENTICATED, detail)

    @classmethod
    def invalid(cls, detail: str) -> "PollAppError":
        return cls(ErrorKind.INVALID, detail)

    @classmethod
    def upstream(cls, detail: str) -> "PollAppError":
        return cls(ErrorKind.UPSTREAM, detail)

    @classmethod
    def serialization(cls, detail: str) -> "PollAppError":
        return cls(ErrorKind.SERIALIZATION, detail)


async def poll_app_error_handler(request: Request, exc: PollAppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": exc.kind.value},
    )
