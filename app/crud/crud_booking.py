# app/crud/crud_booking.py
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import and_, update
from sqlalchemy.orm import Session, joinedload

from app.models.booking import Booking
from app.utils.time import utcnow


class CRUDBooking:
    """Data access for bookings.

    Lifecycle writes are conditional UPDATEs keyed on the current status and
    only flush; the booking service owns the transaction and commits.
    """

    def get(self, db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).options(
            joinedload(Booking.event)
        ).filter(Booking.id == booking_id).first()

    def get_by_ticket_id(self, db: Session, ticket_id: str) -> Optional[Booking]:
        return db.query(Booking).options(
            joinedload(Booking.event)
        ).filter(Booking.ticket_id == ticket_id).first()

    def get_by_invitation_code(self, db: Session, code: str) -> Optional[Booking]:
        return db.query(Booking).options(
            joinedload(Booking.event)
        ).filter(Booking.invitation_code == code).first()

    def get_by_otp(self, db: Session, otp_code: str) -> Optional[Booking]:
        """The booking holding `otp_code`, preferring the one that can still redeem it.

        A verified booking keeps its code for reuse reporting, so the same code
        may also be held by one unverified booking.
        """
        return db.query(Booking).options(
            joinedload(Booking.event)
        ).filter(Booking.otp_code == otp_code).order_by(
            Booking.otp_verified.asc()
        ).first()

    def get_by_user(self, db: Session, user_id: str) -> List[Booking]:
        """All bookings made by a user, newest first."""
        return db.query(Booking).options(
            joinedload(Booking.event)
        ).filter(
            Booking.user_id == user_id
        ).order_by(Booking.created_at.desc()).all()

    def get_by_event(
        self,
        db: Session,
        event_id: str,
        status: Optional[str] = None,
    ) -> List[Booking]:
        query = db.query(Booking).filter(Booking.event_id == event_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.created_at.desc()).all()

    def get_present_by_event(self, db: Session, event_id: str) -> List[Booking]:
        """Confirmed bookings whose holders have been admitted."""
        return db.query(Booking).filter(
            and_(
                Booking.event_id == event_id,
                Booking.status == "confirmed",
                Booking.attendance_status == "present",
            )
        ).order_by(Booking.attendance_verified_at.asc()).all()

    def ticket_id_exists(self, db: Session, ticket_id: str) -> bool:
        return db.query(Booking.id).filter(
            Booking.ticket_id == ticket_id
        ).first() is not None

    def invitation_code_exists(self, db: Session, code: str) -> bool:
        return db.query(Booking.id).filter(
            Booking.invitation_code == code
        ).first() is not None

    def otp_exists(self, db: Session, otp_code: str) -> bool:
        """True while an unverified booking holds the code."""
        return db.query(Booking.id).filter(
            Booking.otp_code == otp_code,
            Booking.otp_verified.is_(False),
        ).first() is not None

    def create_pending(
        self,
        db: Session,
        *,
        event_id: str,
        user_id: str,
        ticket_id: str,
        tickets: int,
        total: int,
    ) -> Booking:
        """Stage a new pending booking. The caller commits."""
        db_obj = Booking(
            event_id=event_id,
            user_id=user_id,
            ticket_id=ticket_id,
            tickets=tickets,
            total=total,
            status="pending",
            payment_status="pending",
            attendance_status="pending",
        )
        db.add(db_obj)
        db.flush()
        return db_obj

    def transition(
        self,
        db: Session,
        booking_id: str,
        from_status: str,
        to_status: str,
        **values: Any,
    ) -> bool:
        """Compare-and-swap the booking status.

        Returns True when exactly one row moved from `from_status` to
        `to_status`; False when the booking was no longer in `from_status`.
        """
        result = db.execute(
            update(Booking).where(
                and_(
                    Booking.id == booking_id,
                    Booking.status == from_status,
                )
            ).values(
                status=to_status,
                updated_at=utcnow(),
                **values
            ).execution_options(synchronize_session=False)
        )
        db.flush()
        return result.rowcount == 1

    def set_qr_payload(self, db: Session, booking_id: str, payload: str) -> bool:
        """Store the signed QR payload once. Later calls leave the first one."""
        result = db.execute(
            update(Booking).where(
                and_(
                    Booking.id == booking_id,
                    Booking.qr_payload.is_(None),
                )
            ).values(
                qr_payload=payload,
                updated_at=utcnow(),
            ).execution_options(synchronize_session=False)
        )
        db.flush()
        return result.rowcount == 1

    def set_otp(
        self,
        db: Session,
        booking_id: str,
        otp_code: str,
        generated_at: datetime,
        expires_at: datetime,
    ) -> bool:
        """Replace the booking's OTP while attendance is still pending."""
        result = db.execute(
            update(Booking).where(
                and_(
                    Booking.id == booking_id,
                    Booking.status == "confirmed",
                    Booking.attendance_status == "pending",
                )
            ).values(
                otp_code=otp_code,
                otp_generated_at=generated_at,
                otp_expires_at=expires_at,
                otp_verified=False,
                updated_at=utcnow(),
            ).execution_options(synchronize_session=False)
        )
        db.flush()
        return result.rowcount == 1

    def mark_present(
        self,
        db: Session,
        booking_id: str,
        credential_kind: str,
        verified_by: str,
        verified_at: datetime,
        total_attendees: int,
    ) -> bool:
        """Consume the credential and admit the booking in one conditional UPDATE.

        Matches only a confirmed, paid booking whose attendance is pending and
        whose credential of `credential_kind` has not been consumed.
        """
        conditions = [
            Booking.id == booking_id,
            Booking.status == "confirmed",
            Booking.payment_status == "completed",
            Booking.attendance_status == "pending",
        ]
        values = {
            "attendance_status": "present",
            "attendance_verified_at": verified_at,
            "attendance_verified_by": verified_by,
            "entry_time": verified_at,
            "total_attendees": total_attendees,
            "updated_at": verified_at,
        }
        if credential_kind == "otp":
            conditions.append(Booking.otp_verified.is_(False))
            values["otp_verified"] = True
        else:
            conditions.append(Booking.qr_scanned.is_(False))
            values.update(
                qr_scanned=True,
                qr_scanned_at=verified_at,
                qr_scanned_by=verified_by,
            )

        result = db.execute(
            update(Booking).where(and_(*conditions)).values(
                **values
            ).execution_options(synchronize_session=False)
        )
        db.flush()
        return result.rowcount == 1


booking_crud = CRUDBooking()
