# sakany/app/core/exceptions.py
"""
Domain errors raised by stores and services.

Each error carries the HTTP status it maps to and a message that is safe
to return to the client. The handlers registered in main.create_app()
turn them into JSON responses; endpoints never catch them.
"""
from typing import Optional

from fastapi import status


class SakanyError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationFailed(SakanyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid data"


class Conflict(SakanyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Email already registered"


class InvalidCredentials(SakanyError):
    # Same message for unknown email and wrong password
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid email or password"


class CurrentPasswordMismatch(InvalidCredentials):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Current password is incorrect"


class NotAuthenticated(SakanyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authenticated"


class Forbidden(SakanyError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Unauthorized"


class NotFound(SakanyError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class InvalidToken(SakanyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid or expired reset token"


class InternalError(SakanyError):
    # Store or crypto failure; the cause is logged, never returned
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"
