# app/models/attendance.py
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base
import uuid


class Attendance(Base):
    """Immutable record written once when a booking is verified at entry."""
    __tablename__ = "attendance_records"

    id = Column(
        String, primary_key=True, default=lambda: f"att_{uuid.uuid4().hex[:12]}"
    )
    booking_id = Column(
        String,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    event_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    verified_by = Column(String, nullable=False)
    verified_at = Column(DateTime(timezone=True), nullable=False)
    ticket_id = Column(String(40), nullable=False)
    credential_kind = Column(String(20), nullable=False)  # 'otp' | 'qr'
    number_of_tickets = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, server_default="present", default="present")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    booking = relationship("Booking", back_populates="attendance")
