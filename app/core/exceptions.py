"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class InvalidTransitionException(AppException):
    """Appointment status change outside the allowed transition table."""

    def __init__(self, current: str, requested: str):
        """Initialize with 400 status code and the rejected transition."""
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change status from {current} to {requested}",
            status_code=400,
        )


class ExternalServiceException(AppException):
    """Upstream vendor call failed."""

    def __init__(self, message: str = "External service unavailable"):
        """Initialize with 502 status code."""
        super().__init__(message, status_code=502)
