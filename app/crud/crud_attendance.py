# app/crud/crud_attendance.py
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.models.attendance import Attendance
from app.models.booking import Booking


class CRUDAttendance:
    """Attendance records are written once per admitted booking and never updated."""

    def get_by_booking(self, db: Session, booking_id: str) -> Optional[Attendance]:
        return db.query(Attendance).filter(Attendance.booking_id == booking_id).first()

    def create_for_booking(
        self,
        db: Session,
        *,
        booking: Booking,
        verified_by: str,
        verified_at: datetime,
        credential_kind: str,
    ) -> Attendance:
        """Stage the attendance record for an admitted booking. The caller commits."""
        db_obj = Attendance(
            booking_id=booking.id,
            event_id=booking.event_id,
            user_id=booking.user_id,
            verified_by=verified_by,
            verified_at=verified_at,
            ticket_id=booking.ticket_id,
            credential_kind=credential_kind,
            number_of_tickets=booking.tickets,
            status="present",
        )
        db.add(db_obj)
        db.flush()
        return db_obj


attendance = CRUDAttendance()
