# app/services/booking/__init__.py
from .attendance_verifier import AttendanceVerifier
from .booking_service import BookingService
from .credential_service import CredentialService
from .credentials import BookingCredential, CredentialKind

__all__ = [
    "AttendanceVerifier",
    "BookingService",
    "CredentialService",
    "BookingCredential",
    "CredentialKind",
]
