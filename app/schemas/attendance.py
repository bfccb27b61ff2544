# app/schemas/attendance.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class VerifyCredentialInput(BaseModel):
    """An OTP, a scanned QR payload or a bare ticket id."""
    credential: str = Field(..., min_length=1, max_length=4096)


class Attendance(BaseModel):
    id: str
    booking_id: str
    event_id: str
    user_id: str
    verified_by: str
    verified_at: datetime
    ticket_id: str
    credential_kind: str
    number_of_tickets: int
    status: str

    model_config = {"from_attributes": True}


class OTPResponse(BaseModel):
    otp: str
    expires_at: datetime


class QRTicketResponse(BaseModel):
    ticket_id: str
    payload: str


class TicketStatus(BaseModel):
    ticket_id: str
    event_id: str
    user_id: str
    tickets: int
    status: str
    scanned: bool
    scanned_at: Optional[datetime] = None
    attendance_status: str
    attendance_verified_at: Optional[datetime] = None
