# app/services/event_service.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.errors import AuthorizationError, InvalidTransitionError, NotFoundError
from app.models.event import Event
from app.schemas.event import AttendanceDetail, EventCreate, EventStatistics
from app.schemas.token import TokenPayload
from app.utils.time import ensure_utc

logger = logging.getLogger(__name__)

# target status -> statuses it may be reached from
EVENT_TRANSITIONS = {
    "published": ("draft",),
    "cancelled": ("draft", "published", "sold_out"),
    "completed": ("published", "sold_out"),
}


class EventService:
    """Organizer-side event lifecycle and reporting."""

    def __init__(self, db: Session):
        self.db = db

    def create_event(self, event_in: EventCreate, organizer: TokenPayload) -> Event:
        event = crud.event.create_with_organizer(
            self.db,
            obj_in=event_in,
            organizer_id=organizer.sub,
            default_currency=settings.DEFAULT_CURRENCY,
        )
        logger.info(f"Event {event.id} created by {organizer.sub}")
        return event

    def get_event(self, event_id: str) -> Event:
        event = crud.event.get(self.db, id=event_id)
        if not event:
            raise NotFoundError("Event", event_id)
        return event

    def get_owned_event(self, event_id: str, organizer: TokenPayload) -> Event:
        event = self.get_event(event_id)
        if event.organizer_id != organizer.sub:
            raise AuthorizationError("Not authorized to manage this event")
        return event

    def list_events(self, actor: TokenPayload, skip: int = 0, limit: int = 100) -> List[Event]:
        """Organizers see their own events; participants see what is on sale."""
        if actor.is_organizer:
            return crud.event.get_multi_by_organizer(
                self.db, organizer_id=actor.sub, skip=skip, limit=limit
            )
        return crud.event.get_published(self.db, skip=skip, limit=limit)

    def transition(self, event_id: str, organizer: TokenPayload, to_status: str) -> Event:
        event = self.get_owned_event(event_id, organizer)
        allowed = EVENT_TRANSITIONS[to_status]
        if not crud.event.transition_status(
            self.db, event_id=event.id, from_statuses=allowed, to_status=to_status
        ):
            self.db.refresh(event)
            raise InvalidTransitionError(
                f"Cannot move event from {event.status} to {to_status}"
            )
        self.db.refresh(event)
        logger.info(f"Event {event.id} moved to {to_status}")
        return event

    def delete_event(self, event_id: str, organizer: TokenPayload) -> None:
        """Delete an event together with its bookings, payments and attendance."""
        event = self.get_owned_event(event_id, organizer)
        crud.event.remove(self.db, id=event.id)
        logger.info(f"Event {event_id} deleted by {organizer.sub}")

    def get_event_statistics(
        self, organizer: TokenPayload, event_id: Optional[str] = None
    ) -> List[EventStatistics]:
        if event_id:
            self.get_owned_event(event_id, organizer)

        rows = crud.event.get_statistics_rows(
            self.db, organizer_id=organizer.sub, event_id=event_id
        )
        statistics = []
        for event, tickets, revenue, bookings_count, attendees in rows:
            present = crud.booking_crud.get_present_by_event(self.db, event.id)
            percentage = round(attendees / tickets * 100, 2) if tickets else 0.0
            statistics.append(
                EventStatistics(
                    event_id=event.id,
                    event_title=event.title,
                    event_category=event.category,
                    total_tickets=tickets,
                    total_revenue=revenue,
                    total_attendees=attendees,
                    bookings_count=bookings_count,
                    attendance_percentage=percentage,
                    attendance_details=[
                        AttendanceDetail(
                            user_id=b.user_id,
                            tickets=b.tickets,
                            verified_at=ensure_utc(b.attendance_verified_at),
                        )
                        for b in present
                    ],
                )
            )
        return statistics
