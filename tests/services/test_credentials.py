"""
Tests for credential issuance.

Covers the BookingCredential value (expiry, validity window, consumption),
identifier formats, QR payload signing, and CredentialService's OTP and QR
issuance rules.
"""

import re
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest

from app.core.config import settings
from app.core.errors import (
    AlreadyVerifiedError,
    AuthorizationError,
    NotConfirmedError,
    NotFoundError,
)
from app.services.booking import credentials
from app.services.booking.credentials import BookingCredential, CredentialKind
from app.services.booking.credential_service import CredentialService
from tests.utils.auth import ORGANIZER_ID
from tests.utils.booking import (
    create_confirmed_booking,
    create_pending_booking,
    create_random_event,
)

NOW = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)


def _make_booking(**overrides):
    """Create a mock Booking row with credential columns."""
    defaults = {
        "id": "bkg_abc123",
        "event_id": "evt_0000aaaa",
        "user_id": "usr_0000bbbb",
        "ticket_id": "TKT-AAAA-BBBB-0A1B2C",
        "tickets": 2,
        "invitation_code": "AAAA-BBBB-ABCDEF",
        "qr_payload": None,
        "qr_scanned": False,
        "qr_scanned_at": None,
        "otp_code": "123456",
        "otp_generated_at": NOW,
        "otp_expires_at": NOW + timedelta(minutes=30),
        "otp_verified": False,
        "attendance_verified_at": None,
    }
    defaults.update(overrides)
    mock = MagicMock()
    for key, val in defaults.items():
        setattr(mock, key, val)
    return mock


class TestBookingCredential:
    def test_otp_expires_after_deadline(self):
        cred = credentials.otp_credential(_make_booking())

        assert cred.kind == CredentialKind.otp
        assert not cred.is_expired(NOW + timedelta(minutes=30))
        assert cred.is_expired(NOW + timedelta(minutes=31))

    def test_otp_consumed(self):
        verified_at = NOW + timedelta(minutes=5)
        cred = credentials.otp_credential(
            _make_booking(otp_verified=True, attendance_verified_at=verified_at)
        )

        assert cred.is_consumed
        assert cred.consumed_at == verified_at

    def test_naive_database_datetimes_are_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        cred = credentials.otp_credential(
            _make_booking(otp_generated_at=naive, otp_expires_at=naive + timedelta(minutes=30))
        )

        assert cred.expires_at.tzinfo is not None
        assert cred.is_expired(NOW + timedelta(minutes=31))

    def test_qr_window_around_event_start(self):
        starts_at = NOW + timedelta(days=1)
        cred = credentials.qr_credential(_make_booking(), starts_at)
        window = timedelta(hours=settings.QR_SCAN_WINDOW_HOURS)

        assert cred.valid_from == starts_at - window
        assert cred.expires_at == starts_at + window
        assert cred.is_premature(starts_at - window - timedelta(minutes=1))
        assert not cred.is_premature(starts_at - window + timedelta(minutes=1))
        assert cred.is_expired(starts_at + window + timedelta(minutes=1))

    def test_qr_consumed_by_scan(self):
        scanned_at = NOW
        cred = credentials.qr_credential(
            _make_booking(qr_scanned=True, qr_scanned_at=scanned_at), NOW
        )

        assert cred.is_consumed
        assert cred.consumed_at == scanned_at

    def test_invitation_never_expires(self):
        cred = credentials.invitation_credential(_make_booking())

        assert cred.value == "AAAA-BBBB-ABCDEF"
        assert not cred.is_expired(NOW + timedelta(days=3650))
        assert not cred.is_premature(NOW - timedelta(days=3650))
        assert not cred.is_consumed

    def test_credential_is_immutable(self):
        cred = BookingCredential(kind=CredentialKind.otp, booking_id="bkg_1", value="123456")

        with pytest.raises(Exception):
            cred.value = "654321"


class TestIdentifiers:
    def test_ticket_id_format(self):
        ticket_id = credentials.generate_ticket_id("evt_12ab34cd56ef", "usr_participant_0002")
        assert re.fullmatch(r"TKT-56EF-0002-[0-9A-F]{6}", ticket_id)

    def test_invitation_code_format(self):
        code = credentials.generate_invitation_code("evt_12ab34cd56ef", "usr_participant_0002")
        assert re.fullmatch(r"56EF-0002-[0-9A-F]{6}", code)

    def test_otp_is_six_digits(self):
        for _ in range(50):
            otp = credentials.generate_otp()
            assert credentials.is_otp(otp)
            assert not otp.startswith("0")

    def test_credential_shape_detection(self):
        assert credentials.is_otp("042311")
        assert not credentials.is_otp("42311")
        assert not credentials.is_otp("TKT-AAAA-BBBB-0A1B2C")
        assert credentials.is_jwt_qr("aaa.bbb.ccc")
        assert not credentials.is_jwt_qr("TKT-AAAA-BBBB-0A1B2C")


class TestQRSigning:
    def test_sign_and_decode(self):
        booking = _make_booking()
        token = credentials.sign_ticket_qr(booking, NOW)

        claims = credentials.decode_ticket_qr(token)

        assert claims["tid"] == booking.ticket_id
        assert claims["eid"] == booking.event_id
        assert claims["sub"] == booking.user_id
        assert claims["tickets"] == 2

    def test_foreign_signature_rejected(self):
        forged = jwt.encode(
            {"tid": "TKT-AAAA-BBBB-0A1B2C", "eid": "evt_0000aaaa", "sub": "usr_0000bbbb"},
            "not-our-secret",
            algorithm="HS256",
        )

        assert credentials.decode_ticket_qr(forged) is None

    def test_garbage_rejected(self):
        assert credentials.decode_ticket_qr("not.a.jwt") is None


class TestCredentialService:
    def test_issue_otp(self, db_session, participant, clock):
        event = create_random_event(db_session, ORGANIZER_ID)
        booking = create_confirmed_booking(db_session, event, participant)

        cred = CredentialService(db_session).issue_otp(booking.id, participant)

        assert credentials.is_otp(cred.value)
        assert cred.issued_at == clock.now
        assert cred.expires_at == clock.now + timedelta(minutes=settings.OTP_TTL_MINUTES)
        db_session.refresh(booking)
        assert booking.otp_code == cred.value
        assert booking.otp_verified is False

    def test_issue_otp_replaces_previous(self, db_session, participant, clock):
        event = create_random_event(db_session, ORGANIZER_ID)
        booking = create_confirmed_booking(db_session, event, participant)
        service = CredentialService(db_session)

        service.issue_otp(booking.id, participant)
        clock.set(clock.now + timedelta(minutes=10))
        second = service.issue_otp(booking.id, participant)

        db_session.refresh(booking)
        assert booking.otp_code == second.value
        assert second.issued_at == clock.now

    def test_issue_otp_requires_confirmed_booking(self, db_session, participant):
        event = create_random_event(db_session, ORGANIZER_ID)
        booking = create_pending_booking(db_session, event, participant)

        with pytest.raises(NotConfirmedError):
            CredentialService(db_session).issue_otp(booking.id, participant)

    def test_issue_otp_after_attendance_marked(self, db_session, participant):
        event = create_random_event(db_session, ORGANIZER_ID)
        booking = create_confirmed_booking(db_session, event, participant)
        booking.attendance_status = "present"
        booking.attendance_verified_at = NOW
        db_session.commit()

        with pytest.raises(AlreadyVerifiedError) as exc_info:
            CredentialService(db_session).issue_otp(booking.id, participant)

        assert exc_info.value.extra()["verifiedAt"] == NOW.isoformat()

    def test_issue_otp_by_stranger(self, db_session, participant, other_participant):
        event = create_random_event(db_session, ORGANIZER_ID)
        booking = create_confirmed_booking(db_session, event, participant)

        with pytest.raises(AuthorizationError):
            CredentialService(db_session).issue_otp(booking.id, other_participant)

    def test_issue_otp_by_event_organizer(self, db_session, participant, organizer):
        event = create_random_event(db_session, organizer.sub)
        booking = create_confirmed_booking(db_session, event, participant)

        cred = CredentialService(db_session).issue_otp(booking.id, organizer)

        assert credentials.is_otp(cred.value)

    def test_qr_payload_is_issued_once(self, db_session, participant):
        event = create_random_event(db_session, ORGANIZER_ID)
        booking = create_confirmed_booking(db_session, event, participant)
        service = CredentialService(db_session)

        _, first = service.get_qr_ticket(booking.id, participant)
        _, second = service.get_qr_ticket(booking.id, participant)

        assert first == second
        assert credentials.decode_ticket_qr(first)["tid"] == booking.ticket_id

    def test_qr_requires_payment(self, db_session, participant):
        event = create_random_event(db_session, ORGANIZER_ID)
        booking = create_pending_booking(db_session, event, participant)

        with pytest.raises(NotConfirmedError):
            CredentialService(db_session).get_qr_ticket(booking.id, participant)

    def test_ticket_status_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            CredentialService(db_session).get_ticket_status("TKT-0000-0000-000000")
