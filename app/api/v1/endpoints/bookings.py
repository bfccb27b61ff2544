# app/api/v1/endpoints/bookings.py
from typing import List
from fastapi import APIRouter, Depends, status

from app.api import deps
from app.schemas.booking import (
    Booking as BookingSchema,
    BookingCreate,
    BookingStatusUpdate,
    InvitationCodeCheck,
    InvitationCodeResult,
    InvitationDispatch,
)
from app.schemas.token import TokenPayload
from app.services.booking import BookingService

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingSchema, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_in: BookingCreate,
    service: BookingService = Depends(deps.get_booking_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Books tickets for an event. The booking stays pending until paid."""
    return service.create_booking(booking_in.event_id, current_user, booking_in.tickets)


@router.get("/me", response_model=List[BookingSchema])
def list_my_bookings(
    service: BookingService = Depends(deps.get_booking_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.list_user_bookings(current_user.sub)


# Registered before /{booking_id} routes so "verify-code" is not read as an id
@router.post("/verify-code", response_model=InvitationCodeResult)
def verify_invitation_code(
    check_in: InvitationCodeCheck,
    service: BookingService = Depends(deps.get_booking_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    booking = service.verify_invitation_code(check_in.invitation_code)
    return InvitationCodeResult(
        booking=booking, is_valid=True, message="Invitation code is valid"
    )


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: str,
    service: BookingService = Depends(deps.get_booking_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.get_booking(booking_id, current_user)


@router.put("/{booking_id}/status", response_model=BookingSchema)
def update_booking_status(
    booking_id: str,
    status_in: BookingStatusUpdate,
    service: BookingService = Depends(deps.get_booking_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Cancels a booking, or confirms a free booking as its event's organizer.

    Paid bookings are confirmed through /payments/verify only.
    """
    return service.update_booking_status(
        booking_id, current_user, status_in.status, status_in.message
    )


@router.post("/{booking_id}/send-invitation", response_model=InvitationDispatch)
def send_invitation(
    booking_id: str,
    service: BookingService = Depends(deps.get_booking_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    message = service.send_invitation(booking_id, current_user)
    booking = service.get_booking(booking_id, current_user)
    return InvitationDispatch(invitation_code=booking.invitation_code, message=message)
