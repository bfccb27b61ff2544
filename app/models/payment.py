# app/models/payment.py
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base
import uuid


class Payment(Base):
    __tablename__ = "payments"

    id = Column(
        String, primary_key=True, default=lambda: f"pay_{uuid.uuid4().hex[:12]}"
    )
    # A booking owns at most one payment record
    booking_id = Column(
        String,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    user_id = Column(String, nullable=False, index=True)

    # Financial
    currency = Column(String(3), nullable=False)
    amount = Column(Integer, nullable=False)  # Fixed at order creation, smallest unit

    # Gateway identifiers
    external_order_id = Column(String(255), unique=True, nullable=False)
    external_payment_id = Column(String(255), nullable=True, index=True)

    # Values: 'pending', 'completed', 'failed'
    status = Column(String(20), nullable=False, server_default="pending", default="pending")

    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    booking = relationship("Booking", back_populates="payment")

    @property
    def is_successful(self) -> bool:
        """Check if payment was successful."""
        return self.status == "completed"
