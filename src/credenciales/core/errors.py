# src/credenciales/core/errors.py
"""
Error taxonomy shared by the services and the HTTP layer.

Every failure a client can observe is an ``AppError`` tagged with an
``ErrorKind``. Handlers and tests branch on the class or on ``kind``,
never on the message text.
"""
from enum import Enum
from typing import Optional

from fastapi import status


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    UNAUTHENTICATED = "unauthenticated"
    SESSION_EXPIRED = "session_expired"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_FOUND = "not_found"
    UPLOAD_REJECTED = "upload_rejected"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal_error"


class AppError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"error": self.message, "kind": self.kind.value}


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(AppError):
    kind = ErrorKind.UNAUTHENTICATED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class SessionExpired(Unauthenticated):
    kind = ErrorKind.SESSION_EXPIRED
    default_message = "Session expired"


class InvalidCredentials(Unauthenticated):
    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid credentials"

    def __init__(self):
        # Fixed message: unknown email and wrong password must look identical.
        super().__init__(self.default_message)


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UploadRejected(AppError):
    kind = ErrorKind.UPLOAD_REJECTED
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Upload rejected"


class RateLimited(AppError):
    kind = ErrorKind.RATE_LIMITED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"


class InternalError(AppError):
    pass
