"""Domain Exceptions

Every rejection raised by the booking and reservation lifecycles derives
from ``DomainError``. The API layer maps ``status_code`` onto the HTTP
response and serializes ``to_dict()`` as the body.
"""
from typing import Any, Dict, Optional


class DomainError(ValueError):
    """Base class for lifecycle rejections"""
    error_code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "code": self.error_code,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code}')"


class ValidationError(DomainError):
    """Malformed or out-of-range input"""
    error_code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(DomainError):
    """Referenced room, booking, reservation, document or user does not resolve"""
    error_code = "RESOURCE_NOT_FOUND"
    status_code = 404


class ConflictError(DomainError):
    """Requested stay overlaps an existing occupancy claim"""
    error_code = "BOOKING_CONFLICT"
    status_code = 409


class AuthorizationError(DomainError):
    """Actor role or ownership does not permit the operation"""
    error_code = "AUTHORIZATION_FAILED"
    status_code = 403


class InvalidStateTransitionError(DomainError):
    """Requested status change is not reachable from the current state"""
    error_code = "INVALID_STATE_TRANSITION"
    status_code = 400

    def __init__(self, message: str, current_status: Optional[str] = None,
                 requested_status: Optional[str] = None):
        details = {}
        if current_status is not None:
            details["current_status"] = current_status
        if requested_status is not None:
            details["requested_status"] = requested_status
        super().__init__(message, details)


class AlreadyConvertedError(InvalidStateTransitionError):
    """Reservation already produced a booking"""
    error_code = "ALREADY_CONVERTED"


class ExpiredError(DomainError):
    """Reservation hold lapsed before the deposit was paid"""
    error_code = "RESERVATION_EXPIRED"
    status_code = 400
