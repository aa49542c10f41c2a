"""Failures raised by the authentication core.

Every error carries a ``message`` that is safe to show to the caller.
``ServerError`` deliberately carries nothing but a generic message; the
underlying fault is only logged.
"""


class AuthError(Exception):
    """Base class for expected authentication and authorization failures."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class FieldValidationError(AuthError):
    default_message = "All fields are required"


class DuplicateIdentityError(AuthError):
    default_message = "Email already registered"


class UserNotFoundError(AuthError):
    default_message = "User not found"


class InvalidCredentialsError(AuthError):
    default_message = "Invalid password"


class UnauthenticatedError(AuthError):
    default_message = "Not logged in"


class ForbiddenError(AuthError):
    default_message = "Admin access only"


class ServerError(AuthError):
    default_message = "Server error"
