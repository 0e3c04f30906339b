"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class EmptyMessageError(ValidationError):
    """Raised when a message carries neither text nor an attachment."""

    def __init__(self, message="A message needs text or an attachment."):
        """Initialize the error."""
        super().__init__(message)


class PermissionDenied(AppError):
    """Raised when a user may not perform a mutation."""

    def __init__(self, message="You are not allowed to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class TransientUnavailable(AppError):
    """Raised when the backing store could not be reached.

    Callers may retry; services never retry on their own.
    """

    def __init__(self, message="The service is temporarily unavailable.", draft=None):
        """Initialize the error."""
        super().__init__(message, 503)
        self.draft = draft
