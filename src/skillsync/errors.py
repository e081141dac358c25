from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-facing errors.

    All errors that inherit from UserError will have their messages
    displayed to the user as notifications. These errors should not
    contain any sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a comment cannot be addressed (missing id or unknown parent)."""

    def __init__(self, message: str = "Comment not found") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Raised when a user tries to edit or delete a comment they did not write."""


class ValidationError(UserError):
    """Raised when user input fails validation before reaching the network."""


class FetchError(UserError):
    """Raised when a remote call fails at the transport or server level."""

    def __init__(self, message: str = "Request failed", status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
