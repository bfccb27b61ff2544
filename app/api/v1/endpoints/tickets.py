# app/api/v1/endpoints/tickets.py
from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas.attendance import (
    Attendance as AttendanceSchema,
    OTPResponse,
    QRTicketResponse,
    TicketStatus,
    VerifyCredentialInput,
)
from app.schemas.token import TokenPayload
from app.services.booking import AttendanceVerifier, CredentialService
from app.utils.time import ensure_utc

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("/verify", response_model=AttendanceSchema)
def verify_credential(
    credential_in: VerifyCredentialInput,
    verifier: AttendanceVerifier = Depends(deps.get_attendance_verifier),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    """Admits the holder of an OTP, QR payload or ticket id. Each works once."""
    return verifier.verify_credential(credential_in.credential, current_user)


@router.post("/{booking_id}/qr", response_model=QRTicketResponse)
def get_qr_ticket(
    booking_id: str,
    service: CredentialService = Depends(deps.get_credential_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    booking, payload = service.get_qr_ticket(booking_id, current_user)
    return QRTicketResponse(ticket_id=booking.ticket_id, payload=payload)


@router.post("/{booking_id}/otp", response_model=OTPResponse)
def issue_otp(
    booking_id: str,
    service: CredentialService = Depends(deps.get_credential_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    credential = service.issue_otp(booking_id, current_user)
    return OTPResponse(otp=credential.value, expires_at=credential.expires_at)


@router.get("/{ticket_id}/status", response_model=TicketStatus)
def get_ticket_status(
    ticket_id: str,
    service: CredentialService = Depends(deps.get_credential_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    booking = service.get_ticket_status(ticket_id)
    return TicketStatus(
        ticket_id=booking.ticket_id,
        event_id=booking.event_id,
        user_id=booking.user_id,
        tickets=booking.tickets,
        status=booking.status,
        scanned=bool(booking.qr_scanned or booking.otp_verified),
        scanned_at=ensure_utc(booking.qr_scanned_at or booking.attendance_verified_at),
        attendance_status=booking.attendance_status,
        attendance_verified_at=ensure_utc(booking.attendance_verified_at),
    )
