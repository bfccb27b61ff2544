# app/models/event.py
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship
from app.db.base_class import Base
import uuid


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_events_capacity_positive"),
        CheckConstraint("tickets_sold >= 0", name="ck_events_tickets_sold_non_negative"),
        CheckConstraint("tickets_sold <= capacity", name="ck_events_not_oversold"),
        CheckConstraint("price >= 0", name="ck_events_price_non_negative"),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"evt_{uuid.uuid4().hex[:12]}"
    )
    organizer_id = Column(String, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    category = Column(String(50), nullable=False, server_default="other")
    starts_at = Column(DateTime(timezone=True), nullable=False)

    # Financial (smallest currency unit)
    price = Column(Integer, nullable=False, server_default="0")
    currency = Column(String(3), nullable=False)

    # Capacity ledger. tickets_sold is only mutated through
    # app.services.booking.capacity_ledger conditional updates.
    capacity = Column(Integer, nullable=False)
    tickets_sold = Column(Integer, nullable=False, server_default="0", default=0)

    # Values: 'draft', 'published', 'cancelled', 'sold_out', 'completed'
    status = Column(String(20), nullable=False, server_default="draft", default="draft")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    bookings = relationship(
        "Booking",
        back_populates="event",
        cascade="all, delete-orphan",
    )

    @property
    def available_tickets(self) -> int:
        """Tickets that can still be sold."""
        return max(0, self.capacity - (self.tickets_sold or 0))
