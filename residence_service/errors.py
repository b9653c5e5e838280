from typing import List, Optional

from fastapi import status


class ServiceError(Exception):
    """
    Base class for failures reported to API clients.

    Each subclass fixes the HTTP status code; the message is returned as the
    envelope's ``error`` field and ``details`` (if any) as its ``details``.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTimeRangeError(ValidationError):
    pass


class AlreadyCancelledError(ValidationError):
    pass


class PastBookingError(ValidationError):
    pass


class InvalidStateError(ValidationError):
    pass


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class InternalError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
