# app/schemas/booking.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


class AttendanceStatus(str, Enum):
    pending = "pending"
    present = "present"
    absent = "absent"


class BookingCreate(BaseModel):
    # Totals and ticket identifiers are always computed server-side, so the
    # request carries nothing but the event and the ticket count.
    event_id: str
    tickets: int = Field(..., ge=1)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    message: Optional[str] = Field(None, max_length=2000)


class Booking(BaseModel):
    id: str
    event_id: str
    user_id: str
    ticket_id: str
    tickets: int
    total: int
    status: BookingStatus
    payment_status: PaymentStatus
    invitation_code: Optional[str] = None
    confirmation_message: Optional[str] = None
    qr_scanned: bool = False
    qr_scanned_at: Optional[datetime] = None
    attendance_status: AttendanceStatus = AttendanceStatus.pending
    attendance_verified_at: Optional[datetime] = None
    verification_status: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InvitationCodeCheck(BaseModel):
    invitation_code: str = Field(..., min_length=1)


class InvitationCodeResult(BaseModel):
    booking: Booking
    is_valid: bool
    message: str


class InvitationDispatch(BaseModel):
    invitation_code: str
    message: str
