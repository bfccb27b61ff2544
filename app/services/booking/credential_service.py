# app/services/booking/credential_service.py
import logging
from datetime import timedelta
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.errors import (
    AlreadyVerifiedError,
    AuthorizationError,
    NotConfirmedError,
    NotFoundError,
)
from app.models.booking import Booking
from app.schemas.token import TokenPayload
from app.utils import time as clock
from . import credentials
from .credentials import BookingCredential

logger = logging.getLogger(__name__)

MAX_GENERATION_ATTEMPTS = 10


class CredentialService:
    """
    Issues the credentials a booking holder presents at entry.

    Identifier uniqueness is checked before use and enforced again by the
    unique constraints on the bookings table.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- Unique identifiers ---

    def unique_ticket_id(self, event_id: str, user_id: str) -> str:
        for _ in range(MAX_GENERATION_ATTEMPTS):
            ticket_id = credentials.generate_ticket_id(event_id, user_id)
            if not crud.booking_crud.ticket_id_exists(self.db, ticket_id):
                return ticket_id
        raise RuntimeError(
            f"Could not generate unique ticket id after {MAX_GENERATION_ATTEMPTS} attempts"
        )

    def unique_invitation_code(self, event_id: str, user_id: str) -> str:
        for _ in range(MAX_GENERATION_ATTEMPTS):
            code = credentials.generate_invitation_code(event_id, user_id)
            if not crud.booking_crud.invitation_code_exists(self.db, code):
                return code
        raise RuntimeError(
            f"Could not generate unique invitation code after {MAX_GENERATION_ATTEMPTS} attempts"
        )

    def unique_otp(self) -> str:
        for _ in range(MAX_GENERATION_ATTEMPTS):
            otp = credentials.generate_otp()
            if not crud.booking_crud.otp_exists(self.db, otp):
                return otp
        raise RuntimeError(
            f"Could not generate unique OTP after {MAX_GENERATION_ATTEMPTS} attempts"
        )

    # --- Helpers ---

    def _get_booking(self, booking_id: str) -> Booking:
        booking = crud.booking_crud.get(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    @staticmethod
    def _authorize_holder_or_organizer(booking: Booking, actor: TokenPayload) -> None:
        if actor.sub not in (booking.user_id, booking.event.organizer_id):
            raise AuthorizationError("Not authorized to access this booking")

    @staticmethod
    def _require_paid(booking: Booking) -> None:
        if not booking.is_confirmed or not booking.is_paid:
            raise NotConfirmedError("Booking must be confirmed and paid")

    # --- QR ticket ---

    def get_qr_ticket(self, booking_id: str, actor: TokenPayload) -> Tuple[Booking, str]:
        """Return the booking's signed QR payload, signing it on first request."""
        booking = self._get_booking(booking_id)
        self._authorize_holder_or_organizer(booking, actor)
        self._require_paid(booking)

        if booking.qr_payload:
            return booking, booking.qr_payload

        try:
            payload = credentials.sign_ticket_qr(booking, clock.utcnow())
            stored = crud.booking_crud.set_qr_payload(self.db, booking.id, payload)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        if stored:
            logger.info(f"QR payload issued for booking {booking.id}")
        # A concurrent request may have signed first; its payload wins.
        return booking, booking.qr_payload

    # --- OTP ---

    def issue_otp(self, booking_id: str, actor: TokenPayload) -> BookingCredential:
        """Generate a fresh OTP for the booking, replacing any previous one."""
        booking = self._get_booking(booking_id)
        self._authorize_holder_or_organizer(booking, actor)
        if booking.is_present:
            raise AlreadyVerifiedError(clock.ensure_utc(booking.attendance_verified_at))
        self._require_paid(booking)

        for _ in range(MAX_GENERATION_ATTEMPTS):
            now = clock.utcnow()
            otp = self.unique_otp()
            try:
                updated = crud.booking_crud.set_otp(
                    self.db,
                    booking.id,
                    otp,
                    generated_at=now,
                    expires_at=now + timedelta(minutes=settings.OTP_TTL_MINUTES),
                )
                if not updated:
                    self.db.rollback()
                    self.db.refresh(booking)
                    if booking.is_present:
                        raise AlreadyVerifiedError(
                            clock.ensure_utc(booking.attendance_verified_at)
                        )
                    raise NotConfirmedError("Booking must be confirmed and paid")
                self.db.commit()
                break
            except IntegrityError:
                # Another booking claimed the same code between check and write
                self.db.rollback()
                logger.warning(f"OTP collision for booking {booking.id}, regenerating")
        else:
            raise RuntimeError(
                f"Could not store unique OTP after {MAX_GENERATION_ATTEMPTS} attempts"
            )

        self.db.refresh(booking)
        logger.info(f"OTP issued for booking {booking.id}")
        return credentials.otp_credential(booking)

    # --- Read-only projections ---

    def get_ticket_status(self, ticket_id: str) -> Booking:
        booking = crud.booking_crud.get_by_ticket_id(self.db, ticket_id)
        if not booking:
            raise NotFoundError("Ticket", ticket_id)
        return booking
