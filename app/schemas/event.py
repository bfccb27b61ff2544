# app/schemas/event.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


class EventStatus(str, Enum):
    draft = "draft"
    published = "published"
    cancelled = "cancelled"
    sold_out = "sold_out"
    completed = "completed"


class EventCategory(str, Enum):
    conference = "conference"
    seminar = "seminar"
    workshop = "workshop"
    party = "party"
    concert = "concert"
    sports = "sports"
    other = "other"


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, json_schema_extra={"example": "Global AI Summit"})
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    category: EventCategory = EventCategory.other
    starts_at: datetime
    price: int = Field(0, ge=0, description="Ticket price in smallest currency unit")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    capacity: int = Field(..., ge=1)


class Event(BaseModel):
    id: str = Field(..., json_schema_extra={"example": "evt_c5a6d8e0f9b1"})
    organizer_id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    category: str
    starts_at: datetime
    price: int
    currency: str
    capacity: int
    tickets_sold: int
    available_tickets: int
    status: EventStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AttendanceDetail(BaseModel):
    user_id: str
    tickets: int
    verified_at: Optional[datetime] = None


class EventStatistics(BaseModel):
    """Tickets, revenue and attendance aggregated for one event."""
    event_id: str
    event_title: str
    event_category: str
    total_tickets: int
    total_revenue: int
    total_attendees: int
    bookings_count: int
    attendance_percentage: float
    attendance_details: List[AttendanceDetail] = []
