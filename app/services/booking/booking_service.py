# app/services/booking/booking_service.py
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud
from app.core.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models.booking import Booking
from app.models.event import Event
from app.schemas.booking import BookingStatus
from app.schemas.token import TokenPayload
from . import capacity_ledger
from .credential_service import CredentialService

logger = logging.getLogger(__name__)

# A status compare-and-swap that loses a race is re-read and tried once more.
CAS_ATTEMPTS = 2
MAX_TICKET_ID_ATTEMPTS = 5
DEFAULT_CANCELLATION_MESSAGE = "Booking has been cancelled."


def format_amount(amount: int, currency: str) -> str:
    """Render an amount held in the smallest currency unit."""
    return f"{currency} {amount / 100:.2f}"


def build_confirmation_message(
    booking: Booking, event: Event, invitation_code: str, note: Optional[str] = None
) -> str:
    lines = [
        f'Your booking for "{event.title}" has been confirmed!',
        "",
        "Event Details:",
        f"- Event: {event.title}",
        f"- Date: {event.starts_at:%Y-%m-%d %H:%M}",
        f"- Location: {event.location or 'TBA'}",
        f"- Number of Tickets: {booking.tickets}",
        f"- Total Amount: {format_amount(booking.total, event.currency)}",
        f"- Invitation Code: {invitation_code}",
        "",
        "Please keep your invitation code safe. You'll need to show this code at the event entrance.",
    ]
    if note:
        lines += ["", f"Additional Information: {note}"]
    return "\n".join(lines)


def build_invitation_message(booking: Booking, event: Event) -> str:
    return "\n".join([
        f'Your booking for "{event.title}" has been confirmed!',
        "",
        "Event Details:",
        f"- Event: {event.title}",
        f"- Date: {event.starts_at:%Y-%m-%d %H:%M}",
        f"- Location: {event.location or 'TBA'}",
        f"- Number of Tickets: {booking.tickets}",
        f"- Total Amount: {format_amount(booking.total, event.currency)}",
        "",
        f"Your Invitation Code: {booking.invitation_code}",
        "",
        "Please keep this code safe and present it at the event entrance.",
    ])


class BookingService:
    """
    Booking state machine.

    pending -> confirmed   via payment reconciliation, or by the organizer for
                           free bookings; reserves capacity in the same commit
    pending -> cancelled   by the participant or the organizer
    confirmed -> cancelled by the organizer; releases capacity and clears the
                           invitation code and OTP
    cancelled is terminal.

    Every transition is a conditional UPDATE on the status last observed. Public
    methods commit once; on any error the session is rolled back before the
    error propagates.
    """

    def __init__(self, db: Session):
        self.db = db
        self.credentials = CredentialService(db)

    # --- Helpers ---

    def _get_booking(self, booking_id: str) -> Booking:
        booking = crud.booking_crud.get(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    def _get_event(self, event_id: str) -> Event:
        event = crud.event.get(self.db, id=event_id)
        if not event:
            raise NotFoundError("Event", event_id)
        return event

    # --- Creation ---

    def create_booking(self, event_id: str, actor: TokenPayload, tickets: int) -> Booking:
        """Create a pending booking. Capacity is reserved only at confirmation."""
        if tickets is None or tickets < 1:
            raise ValidationError("Number of tickets must be at least 1")

        event = self._get_event(event_id)
        if event.organizer_id == actor.sub:
            raise AuthorizationError("Organizers cannot book their own events")
        if event.status not in capacity_ledger.ON_SALE_STATUSES:
            raise InvalidTransitionError(f"Event is {event.status} and not open for booking")
        capacity_ledger.check_availability(event, tickets)

        total = tickets * event.price

        for _ in range(MAX_TICKET_ID_ATTEMPTS):
            ticket_id = self.credentials.unique_ticket_id(event.id, actor.sub)
            try:
                booking = crud.booking_crud.create_pending(
                    self.db,
                    event_id=event.id,
                    user_id=actor.sub,
                    ticket_id=ticket_id,
                    tickets=tickets,
                    total=total,
                )
                self.db.commit()
                break
            except IntegrityError:
                self.db.rollback()
                logger.warning(f"Ticket id collision on {ticket_id}, regenerating")
        else:
            raise RuntimeError(
                f"Could not store unique ticket id after {MAX_TICKET_ID_ATTEMPTS} attempts"
            )

        self.db.refresh(booking)
        logger.info(
            f"Booking {booking.id} created for event {event.id}: "
            f"{tickets} tickets, total {total}"
        )
        return booking

    # --- Confirmation ---

    def confirm_in_transaction(
        self,
        booking: Booking,
        external_payment_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> bool:
        """Stage pending -> confirmed plus the capacity reservation without committing.

        Returns False when the booking was already confirmed (no-op).
        """
        for attempt in range(CAS_ATTEMPTS):
            if attempt:
                self.db.refresh(booking)
            if booking.status == BookingStatus.confirmed.value:
                return False
            if booking.status == BookingStatus.cancelled.value:
                raise InvalidTransitionError("Cannot confirm a cancelled booking")

            event = booking.event
            code = self.credentials.unique_invitation_code(event.id, booking.user_id)
            values = {
                "payment_status": "completed",
                "invitation_code": code,
                "confirmation_message": build_confirmation_message(booking, event, code, note),
            }
            if external_payment_id:
                values["external_payment_id"] = external_payment_id

            if crud.booking_crud.transition(
                self.db, booking.id, BookingStatus.pending.value, BookingStatus.confirmed.value, **values
            ):
                capacity_ledger.reserve(self.db, booking.event_id, booking.tickets)
                return True

        raise InvalidTransitionError("Booking status changed concurrently, please retry")

    def confirm(
        self,
        booking_id: str,
        external_payment_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Booking:
        """Confirm a pending booking. Confirming twice is a no-op."""
        booking = self._get_booking(booking_id)
        try:
            changed = self.confirm_in_transaction(booking, external_payment_id, note)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        if changed:
            logger.info(f"Booking {booking.id} confirmed")
        return booking

    # --- Cancellation ---

    def cancel(self, booking_id: str, actor: TokenPayload, reason: Optional[str] = None) -> Booking:
        """Cancel a booking, releasing its tickets if it had been confirmed."""
        booking = self._get_booking(booking_id)
        is_holder = booking.user_id == actor.sub
        is_organizer = booking.event.organizer_id == actor.sub
        if not (is_holder or is_organizer):
            raise AuthorizationError("Not authorized to update this booking")

        try:
            for attempt in range(CAS_ATTEMPTS):
                if attempt:
                    self.db.refresh(booking)
                observed = booking.status

                if observed == BookingStatus.cancelled.value:
                    raise InvalidTransitionError("Booking is already cancelled")
                if observed == BookingStatus.confirmed.value:
                    if not is_organizer:
                        raise InvalidTransitionError(
                            "Confirmed bookings can only be cancelled by the event organizer"
                        )
                    if booking.is_present:
                        raise InvalidTransitionError(
                            "Cannot cancel a booking whose attendance has been marked"
                        )

                values = {"confirmation_message": reason or DEFAULT_CANCELLATION_MESSAGE}
                if observed == BookingStatus.confirmed.value:
                    values.update(
                        invitation_code=None,
                        otp_code=None,
                        otp_generated_at=None,
                        otp_expires_at=None,
                        qr_payload=None,
                    )

                if crud.booking_crud.transition(
                    self.db, booking.id, observed, BookingStatus.cancelled.value, **values
                ):
                    if observed == BookingStatus.confirmed.value:
                        capacity_ledger.release(self.db, booking.event_id, booking.tickets)
                    break
            else:
                raise InvalidTransitionError("Booking status changed concurrently, please retry")

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} cancelled by {actor.sub} (was {observed})")
        return booking

    # --- External entry point ---

    def update_booking_status(
        self,
        booking_id: str,
        actor: TokenPayload,
        new_status: BookingStatus,
        note: Optional[str] = None,
    ) -> Booking:
        new_status = BookingStatus(new_status)

        if new_status == BookingStatus.pending:
            raise InvalidTransitionError("A booking cannot be moved back to pending")
        if new_status == BookingStatus.cancelled:
            return self.cancel(booking_id, actor, note)

        booking = self._get_booking(booking_id)
        if booking.event.organizer_id != actor.sub:
            raise AuthorizationError("Only the event organizer can confirm bookings")
        if booking.total > 0 and booking.status == BookingStatus.pending.value:
            raise InvalidTransitionError(
                "Paid bookings are confirmed through payment verification"
            )
        return self.confirm(booking_id, note=note)

    # --- Queries ---

    def get_booking(self, booking_id: str, actor: TokenPayload) -> Booking:
        booking = self._get_booking(booking_id)
        if actor.sub not in (booking.user_id, booking.event.organizer_id):
            raise AuthorizationError("Not authorized to view this booking")
        return booking

    def list_user_bookings(self, user_id: str) -> List[Booking]:
        return crud.booking_crud.get_by_user(self.db, user_id)

    def list_event_bookings(self, event_id: str, actor: TokenPayload) -> List[Booking]:
        event = self._get_event(event_id)
        if event.organizer_id != actor.sub:
            raise AuthorizationError("Not authorized to view bookings for this event")
        return crud.booking_crud.get_by_event(self.db, event_id)

    # --- Invitations ---

    def verify_invitation_code(self, code: str) -> Booking:
        """Return the confirmed booking an invitation code belongs to."""
        booking = crud.booking_crud.get_by_invitation_code(self.db, code.strip())
        if not booking or not booking.is_confirmed:
            raise NotFoundError("Invitation code")
        return booking

    def send_invitation(self, booking_id: str, actor: TokenPayload) -> str:
        """Ensure the booking has an invitation code and return the message to deliver."""
        booking = self._get_booking(booking_id)
        event = booking.event
        if event.organizer_id != actor.sub:
            raise AuthorizationError("Only the event organizer can send invitations")
        if not booking.is_confirmed:
            raise InvalidTransitionError("Invitations can only be sent for confirmed bookings")

        if not booking.invitation_code:
            code = self.credentials.unique_invitation_code(event.id, booking.user_id)
            try:
                issued = crud.booking_crud.transition(
                    self.db,
                    booking.id,
                    BookingStatus.confirmed.value,
                    BookingStatus.confirmed.value,
                    invitation_code=code,
                )
                if not issued:
                    raise InvalidTransitionError("Booking status changed concurrently, please retry")
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self.db.refresh(booking)
            logger.info(f"Invitation code re-issued for booking {booking.id}")

        return build_invitation_message(booking, event)
