# app/models/booking.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import relationship
from app.db.base_class import Base
import uuid


class Booking(Base):
    """A participant's booking for an event, from request to attendance.

    Credentials (invitation code, QR payload, OTP) are embedded columns rather
    than separate tables; app.services.booking.credentials exposes them as a
    single BookingCredential value.
    """
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("tickets >= 1", name="ck_bookings_tickets_positive"),
        CheckConstraint("total >= 0", name="ck_bookings_total_non_negative"),
        # An OTP is only reserved while it can still be redeemed; verified
        # codes go back into the pool.
        Index(
            "uq_bookings_active_otp_code",
            "otp_code",
            unique=True,
            postgresql_where=text("NOT otp_verified"),
            sqlite_where=text("NOT otp_verified"),
        ),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"bkg_{uuid.uuid4().hex[:12]}"
    )
    event_id = Column(
        String,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String, nullable=False, index=True)

    # Human-facing ticket identifier. Format: TKT-{event4}-{user4}-{HEX6}
    ticket_id = Column(String(40), unique=True, nullable=False)

    tickets = Column(Integer, nullable=False)
    total = Column(Integer, nullable=False)  # In smallest currency unit

    # Values: 'pending', 'confirmed', 'cancelled'
    status = Column(String(20), nullable=False, server_default="pending", default="pending", index=True)
    # Values: 'pending', 'completed', 'failed'
    payment_status = Column(String(20), nullable=False, server_default="pending", default="pending")
    external_payment_id = Column(String(255), nullable=True)

    invitation_code = Column(String(40), unique=True, nullable=True)
    confirmation_message = Column(Text, nullable=True)

    # QR ticket payload and its one-time scan
    qr_payload = Column(Text, nullable=True)
    qr_scanned = Column(Boolean, nullable=False, server_default="0", default=False)
    qr_scanned_at = Column(DateTime(timezone=True), nullable=True)
    qr_scanned_by = Column(String, nullable=True)

    # OTP (6 digits, unique among unverified codes)
    otp_code = Column(String(6), nullable=True)
    otp_generated_at = Column(DateTime(timezone=True), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    otp_verified = Column(Boolean, nullable=False, server_default="0", default=False)

    # Attendance. Values: 'pending', 'present', 'absent'
    attendance_status = Column(String(20), nullable=False, server_default="pending", default="pending")
    attendance_verified_at = Column(DateTime(timezone=True), nullable=True)
    attendance_verified_by = Column(String, nullable=True)
    entry_time = Column(DateTime(timezone=True), nullable=True)
    total_attendees = Column(Integer, nullable=False, server_default="0", default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    event = relationship("Event", back_populates="bookings")
    payment = relationship(
        "Payment",
        back_populates="booking",
        uselist=False,
        cascade="all, delete-orphan",
    )
    attendance = relationship(
        "Attendance",
        back_populates="booking",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == "confirmed"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "completed"

    @property
    def is_present(self) -> bool:
        return self.attendance_status == "present"

    @property
    def verification_status(self) -> str:
        """Label shown to participants next to their booking."""
        return "Verified" if self.status == "confirmed" else "Not Verified"
