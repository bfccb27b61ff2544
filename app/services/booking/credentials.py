"""
One-time entry credentials attached to a booking.

A booking carries up to three credentials, stored as columns on the booking
row and exposed here as a single BookingCredential value:

  invitation  "{event4}-{user4}-{HEX6}", issued at confirmation, cleared on
              cancellation. Never expires and is never consumed.
  qr          HS256 JWT with claims tid/eid/sub/tickets, issued lazily once the
              booking is paid. Scannable from starts_at - window to
              starts_at + window, consumed by the first successful scan.
  otp         6 digits, valid for OTP_TTL_MINUTES after issue, consumed by the
              first successful verification.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

import jwt

from app.core.config import settings
from app.models.booking import Booking
from app.utils.time import ensure_utc

QR_VERSION = 1


class CredentialKind(str, Enum):
    invitation = "invitation"
    qr = "qr"
    otp = "otp"


@dataclass(frozen=True)
class BookingCredential:
    kind: CredentialKind
    booking_id: str
    value: Optional[str]
    issued_at: Optional[datetime] = None
    valid_from: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    consumed_at: Optional[datetime] = None
    consumed: bool = False

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def is_premature(self, now: datetime) -> bool:
        """True before the credential's validity window opens."""
        return self.valid_from is not None and now < self.valid_from

    @property
    def is_consumed(self) -> bool:
        return self.consumed


# --- Identifier generation ---

def _suffix(identifier: str) -> str:
    return identifier[-4:].upper()


def generate_ticket_id(event_id: str, user_id: str) -> str:
    """TKT-{event4}-{user4}-{HEX6}"""
    return f"TKT-{_suffix(event_id)}-{_suffix(user_id)}-{secrets.token_hex(3).upper()}"


def generate_invitation_code(event_id: str, user_id: str) -> str:
    """{event4}-{user4}-{HEX6}"""
    return f"{_suffix(event_id)}-{_suffix(user_id)}-{secrets.token_hex(3).upper()}"


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


def is_otp(data: str) -> bool:
    return len(data) == 6 and data.isdigit()


def is_jwt_qr(data: str) -> bool:
    """JWT tokens have exactly 2 dots (header.payload.signature)."""
    return data.count(".") == 2


# --- QR payload signing ---

def sign_ticket_qr(booking: Booking, issued_at: datetime) -> str:
    """Sign the QR payload for a paid booking.

    Claims:
    - tid: ticket ID printed on the ticket
    - eid: event ID the booking belongs to
    - sub: user ID of the booking owner
    - tickets: number of admissions
    - iat: issued-at timestamp
    - v: payload version
    """
    payload = {
        "tid": booking.ticket_id,
        "eid": booking.event_id,
        "sub": booking.user_id,
        "tickets": booking.tickets,
        "iat": int(issued_at.timestamp()),
        "v": QR_VERSION,
    }
    return jwt.encode(payload, settings.QR_SIGNING_SECRET, algorithm="HS256")


def decode_ticket_qr(token: str) -> Optional[dict]:
    """Return the verified claims of a QR payload, or None if it was not signed by us."""
    try:
        claims = jwt.decode(
            token,
            settings.QR_SIGNING_SECRET,
            algorithms=["HS256"],
            # Scan windows are enforced against the event start, not token times
            options={"require": ["tid", "eid", "sub"], "verify_iat": False},
        )
    except jwt.InvalidTokenError:
        return None
    return claims


# --- Projections from a booking row ---

def invitation_credential(booking: Booking) -> BookingCredential:
    return BookingCredential(
        kind=CredentialKind.invitation,
        booking_id=booking.id,
        value=booking.invitation_code,
    )


def qr_credential(booking: Booking, starts_at: datetime) -> BookingCredential:
    window = timedelta(hours=settings.QR_SCAN_WINDOW_HOURS)
    starts_at = ensure_utc(starts_at)
    return BookingCredential(
        kind=CredentialKind.qr,
        booking_id=booking.id,
        value=booking.qr_payload,
        valid_from=starts_at - window,
        expires_at=starts_at + window,
        consumed_at=ensure_utc(booking.qr_scanned_at),
        consumed=bool(booking.qr_scanned),
    )


def otp_credential(booking: Booking) -> BookingCredential:
    return BookingCredential(
        kind=CredentialKind.otp,
        booking_id=booking.id,
        value=booking.otp_code,
        issued_at=ensure_utc(booking.otp_generated_at),
        expires_at=ensure_utc(booking.otp_expires_at),
        consumed_at=ensure_utc(booking.attendance_verified_at) if booking.otp_verified else None,
        consumed=bool(booking.otp_verified),
    )
