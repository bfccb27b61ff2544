# app/services/booking/attendance_verifier.py
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.errors import (
    AlreadyUsedError,
    AuthorizationError,
    ExpiredCredentialError,
    InvalidCredentialError,
    NotConfirmedError,
)
from app.models.attendance import Attendance
from app.models.booking import Booking
from app.schemas.token import TokenPayload
from app.utils import time as clock
from . import credentials
from .credentials import CredentialKind

logger = logging.getLogger(__name__)


class AttendanceVerifier:
    """Admits a booking at the door against an OTP, a QR payload or a ticket id."""

    def __init__(self, db: Session):
        self.db = db

    def _resolve(self, raw: str) -> Tuple[Optional[Booking], CredentialKind]:
        if credentials.is_otp(raw):
            return crud.booking_crud.get_by_otp(self.db, raw), CredentialKind.otp

        if credentials.is_jwt_qr(raw):
            claims = credentials.decode_ticket_qr(raw)
            if claims is None:
                return None, CredentialKind.qr
            booking = crud.booking_crud.get_by_ticket_id(self.db, claims["tid"])
            # Only the payload last issued for the booking is honoured; cancelling
            # a booking clears it.
            if booking and (
                booking.event_id != claims["eid"]
                or booking.user_id != claims["sub"]
                or booking.qr_payload != raw
            ):
                return None, CredentialKind.qr
            return booking, CredentialKind.qr

        # Bare ticket id typed in or scanned from a printed ticket
        return crud.booking_crud.get_by_ticket_id(self.db, raw), CredentialKind.qr

    def verify_credential(self, credential: str, organizer: TokenPayload) -> Attendance:
        """
        Consume a credential and mark the booking's attendance as present.

        Checks, in order: the credential resolves to a booking, it is inside
        its validity window, it has not been used, the booking is confirmed and
        paid, and the caller organizes the event. The consume, the attendance
        update and the attendance record are committed together.
        """
        raw = (credential or "").strip()
        booking, kind = self._resolve(raw)
        if booking is None:
            logger.warning(f"Rejected unknown {kind.value} credential")
            raise InvalidCredentialError("Invalid or unknown credential")

        now = clock.utcnow()
        if kind == CredentialKind.otp:
            cred = credentials.otp_credential(booking)
            if cred.is_expired(now):
                logger.warning(f"Rejected expired OTP for booking {booking.id}")
                raise ExpiredCredentialError("OTP has expired")
        else:
            cred = credentials.qr_credential(booking, booking.event.starts_at)
            if cred.is_premature(now):
                logger.warning(f"Rejected early scan for booking {booking.id}")
                raise ExpiredCredentialError(
                    f"Ticket can only be scanned within {settings.QR_SCAN_WINDOW_HOURS} "
                    "hours of the event start"
                )
            if cred.is_expired(now):
                logger.warning(f"Rejected late scan for booking {booking.id}")
                raise ExpiredCredentialError("Ticket scanning window has closed")

        if cred.is_consumed or booking.is_present:
            raise AlreadyUsedError(
                "Ticket has already been used",
                verified_at=cred.consumed_at or clock.ensure_utc(booking.attendance_verified_at),
            )

        if not booking.is_confirmed or not booking.is_paid:
            raise NotConfirmedError("Booking must be confirmed and paid")

        if booking.event.organizer_id != organizer.sub:
            raise AuthorizationError("Only the event organizer can verify attendance")

        try:
            admitted = crud.booking_crud.mark_present(
                self.db,
                booking.id,
                credential_kind=kind.value,
                verified_by=organizer.sub,
                verified_at=now,
                total_attendees=booking.tickets,
            )
            if not admitted:
                self.db.rollback()
                self.db.refresh(booking)
                if not booking.is_confirmed:
                    raise NotConfirmedError("Booking must be confirmed and paid")
                raise AlreadyUsedError(
                    "Ticket has already been used",
                    verified_at=clock.ensure_utc(booking.attendance_verified_at),
                )
            record = crud.attendance.create_for_booking(
                self.db,
                booking=booking,
                verified_by=organizer.sub,
                verified_at=now,
                credential_kind=kind.value,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(record)
        logger.info(
            f"Attendance marked for booking {booking.id} via {kind.value} by {organizer.sub}"
        )
        return record
