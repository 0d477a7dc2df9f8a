"""Use case errors.

Services raise these; API routes catch them and translate to HTTP status
codes. Keeping them free of HTTP details lets the CLI and the email worker
reuse the same services.
"""

from typing import Optional


class UseCaseError(Exception):
    """Base class for expected, caller-facing failures."""

    default_message = "Operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ResourceNotFoundError(UseCaseError):
    default_message = "Resource not found"


class ResourceInvalidError(UseCaseError):
    default_message = "Resource is invalid"


class ResourceGoneError(UseCaseError):
    default_message = "Resource has expired"


class ForbiddenActionError(UseCaseError):
    default_message = "Action not allowed"


class InvalidCredentialsError(UseCaseError):
    default_message = "Invalid credentials"


class RefreshTokenExpiredError(UseCaseError):
    default_message = "Refresh token expired"


class EmailNotVerifiedError(UseCaseError):
    default_message = "Email address has not been verified"


class EmailAlreadyInUseError(UseCaseError):
    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email '{email}' is already in use")


class InvalidAvatarTypeError(UseCaseError):
    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(
            f"Invalid avatar type '{content_type}'. Allowed: png, jpg, jpeg, webp"
        )


class PastDueDateError(UseCaseError):
    default_message = "Due date must be in the future"
