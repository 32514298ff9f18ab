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


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", fields: list[str] | None = None):
        """Initialize with 422 status code and the offending field names."""
        super().__init__(message, status_code=422)
        self.fields = fields or []


class PersistenceException(AppException):
    """Backend store read or write failed."""

    def __init__(self, message: str = "Storage operation failed"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


class RedirectException(AppException):
    """Access gate decided the caller belongs elsewhere."""

    def __init__(self, target: str, message: str = "Redirect required", status_code: int = 403):
        """Initialize with the logical route the caller should be sent to."""
        super().__init__(message, status_code=status_code)
        self.target = target
