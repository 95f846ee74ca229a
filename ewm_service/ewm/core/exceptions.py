"""
Domain exceptions for EWM Service.
Each kind maps to one HTTP status in the application exception handlers.
"""


class EwmError(Exception):
    """Base class for business errors raised by the service layer."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EwmError):
    """Referenced entity does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class ValidationError(EwmError):
    """Caller-supplied data violates a stateless precondition."""

    status_code = 400
    error_code = "BAD_REQUEST"


class ConflictError(EwmError):
    """Operation violates a stateful business rule."""

    status_code = 409
    error_code = "CONFLICT"


class LockAcquisitionError(Exception):
    """Raised when a per-event lock could not be taken in time."""
    pass
