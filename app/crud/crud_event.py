# app/crud/crud_event.py
from typing import Iterable, List, Optional

from sqlalchemy import and_, case, func, update
from sqlalchemy.orm import Session

from .base import CRUDBase
from app.models.booking import Booking
from app.models.event import Event
from app.schemas.event import EventCreate
from app.utils.time import utcnow


class CRUDEvent(CRUDBase[Event, EventCreate]):

    def create_with_organizer(
        self,
        db: Session,
        *,
        obj_in: EventCreate,
        organizer_id: str,
        default_currency: str,
    ) -> Event:
        """Create a draft event owned by the given organizer."""
        data = obj_in.model_dump()
        data["category"] = obj_in.category.value
        data["currency"] = (obj_in.currency or default_currency).upper()
        db_obj = self.model(
            **data,
            organizer_id=organizer_id,
            status="draft",
            tickets_sold=0,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_multi_by_organizer(
        self,
        db: Session,
        *,
        organizer_id: str,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Event]:
        return (
            db.query(self.model)
            .filter(self.model.organizer_id == organizer_id)
            .order_by(self.model.starts_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_published(
        self, db: Session, *, skip: int = 0, limit: int = 100
    ) -> List[Event]:
        """Events participants can browse (on sale or sold out)."""
        return (
            db.query(self.model)
            .filter(self.model.status.in_(["published", "sold_out"]))
            .order_by(self.model.starts_at.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def transition_status(
        self,
        db: Session,
        *,
        event_id: str,
        from_statuses: Iterable[str],
        to_status: str,
    ) -> bool:
        """Move an event to `to_status` only if it is currently in `from_statuses`.

        Commits on success. Returns False when the event was in any other state.
        """
        result = db.execute(
            update(Event)
            .where(
                and_(
                    Event.id == event_id,
                    Event.status.in_(list(from_statuses)),
                )
            )
            .values(status=to_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1

    def get_statistics_rows(
        self,
        db: Session,
        *,
        organizer_id: str,
        event_id: Optional[str] = None,
    ) -> List[tuple]:
        """Per-event booking aggregates for an organizer.

        Returns rows of (event, confirmed_tickets, revenue, bookings_count,
        present_tickets). Only confirmed bookings count towards tickets,
        revenue and the bookings count.
        """
        confirmed = Booking.status == "confirmed"
        present = and_(confirmed, Booking.attendance_status == "present")

        query = (
            db.query(
                Event,
                func.coalesce(func.sum(case((confirmed, Booking.tickets), else_=0)), 0),
                func.coalesce(func.sum(case((confirmed, Booking.total), else_=0)), 0),
                func.coalesce(func.sum(case((confirmed, 1), else_=0)), 0),
                func.coalesce(func.sum(case((present, Booking.tickets), else_=0)), 0),
            )
            .outerjoin(Booking, Booking.event_id == Event.id)
            .filter(Event.organizer_id == organizer_id)
        )
        if event_id:
            query = query.filter(Event.id == event_id)

        return query.group_by(Event.id).order_by(Event.title.asc()).all()


event = CRUDEvent(Event)
