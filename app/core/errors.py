"""Domain error codes for the booking lifecycle.

Every failure that affects booking, event, payment or attendance state is
raised as a DomainError subclass so the HTTP layer can map it to a specific
status code and message instead of a generic 500.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    EXPIRED_CREDENTIAL = "EXPIRED_CREDENTIAL"
    ALREADY_USED = "ALREADY_USED"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    NOT_CONFIRMED = "NOT_CONFIRMED"
    SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    GATEWAY_ERROR = "GATEWAY_ERROR"


class DomainError(Exception):
    """Base domain error with code, user-safe message and HTTP status."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def extra(self) -> Dict[str, Any]:
        """Additional fields surfaced to the caller alongside the message."""
        return {}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Raised when an event, booking or payment does not exist."""

    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class AuthorizationError(DomainError):
    code = ErrorCode.NOT_AUTHORIZED
    status_code = 403


class CapacityError(DomainError):
    """Raised when a request would oversell an event."""

    code = ErrorCode.INSUFFICIENT_CAPACITY
    status_code = 409

    def __init__(self, available: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"Only {available} tickets available")
        self.available = available

    def extra(self) -> Dict[str, Any]:
        return {"available": self.available}


class InvalidTransitionError(DomainError):
    code = ErrorCode.INVALID_TRANSITION
    status_code = 409


class InvalidCredentialError(DomainError):
    code = ErrorCode.INVALID_CREDENTIAL
    status_code = 404


class ExpiredCredentialError(DomainError):
    code = ErrorCode.EXPIRED_CREDENTIAL
    status_code = 410


class AlreadyUsedError(DomainError):
    """Raised when a credential has already been consumed at entry."""

    code = ErrorCode.ALREADY_USED
    status_code = 409

    def __init__(self, message: str, verified_at: Optional[datetime] = None) -> None:
        super().__init__(message)
        self.verified_at = verified_at

    def extra(self) -> Dict[str, Any]:
        return {
            "verifiedAt": self.verified_at.isoformat() if self.verified_at else None
        }


class AlreadyVerifiedError(DomainError):
    """Raised when a new OTP is requested for a booking already marked present."""

    code = ErrorCode.ALREADY_VERIFIED
    status_code = 409

    def __init__(self, verified_at: Optional[datetime] = None) -> None:
        super().__init__("Attendance has already been marked")
        self.verified_at = verified_at

    def extra(self) -> Dict[str, Any]:
        return {
            "verifiedAt": self.verified_at.isoformat() if self.verified_at else None
        }


class NotConfirmedError(DomainError):
    code = ErrorCode.NOT_CONFIRMED
    status_code = 409


class SignatureMismatchError(DomainError):
    code = ErrorCode.SIGNATURE_MISMATCH
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Payment verification failed")


class ValidationError(DomainError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 422


class GatewayError(DomainError):
    """Raised when the payment gateway cannot be reached or rejects a call."""

    code = ErrorCode.GATEWAY_ERROR
    status_code = 502
