# app/services/booking/capacity_ledger.py
"""
Ticket accounting for events.

tickets_sold only ever changes through the two conditional UPDATEs below, so
the check and the write happen in a single statement and concurrent
confirmations cannot oversell. Neither function commits: the booking
transition that triggered the change commits both or rolls both back.
"""

import logging

from sqlalchemy import and_, case, update
from sqlalchemy.orm import Session
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
)

from app.core.errors import CapacityError, InvalidTransitionError, NotFoundError, ValidationError
from app.models.event import Event
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

ON_SALE_STATUSES = ("published", "sold_out")


class _ReservationConflict(Exception):
    """The conditional reserve matched no row."""


def check_availability(event: Event, requested: int) -> int:
    """Raise CapacityError if `requested` tickets cannot be sold; return what is available."""
    available = event.available_tickets
    if requested > available:
        raise CapacityError(available)
    return available


@retry(
    stop=stop_after_attempt(2),
    retry=retry_if_exception_type(_ReservationConflict),
    reraise=True,
)
def _conditional_reserve(db: Session, event_id: str, tickets: int) -> None:
    result = db.execute(
        update(Event).where(
            and_(
                Event.id == event_id,
                Event.status.in_(ON_SALE_STATUSES),
                Event.tickets_sold + tickets <= Event.capacity,
            )
        ).values(
            tickets_sold=Event.tickets_sold + tickets,
            status=case(
                (Event.tickets_sold + tickets >= Event.capacity, "sold_out"),
                else_=Event.status,
            ),
            updated_at=utcnow(),
        ).execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise _ReservationConflict()


def reserve(db: Session, event_id: str, tickets: int) -> None:
    """Add `tickets` to the event's sold count, marking it sold_out when full."""
    if tickets < 1:
        raise ValidationError("Number of tickets must be at least 1")

    try:
        _conditional_reserve(db, event_id, tickets)
    except _ReservationConflict:
        row = (
            db.query(Event.capacity, Event.tickets_sold, Event.status)
            .filter(Event.id == event_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Event", event_id)
        if row.status not in ON_SALE_STATUSES:
            raise InvalidTransitionError(f"Event is {row.status} and not on sale")
        available = max(0, row.capacity - row.tickets_sold)
        logger.warning(
            f"Reservation of {tickets} tickets rejected for event {event_id}: "
            f"{available} available"
        )
        raise CapacityError(available)

    db.flush()
    logger.info(f"Reserved {tickets} tickets for event {event_id}")


def release(db: Session, event_id: str, tickets: int) -> None:
    """Return `tickets` to the event, never dropping below zero.

    A sold_out event goes back on sale as soon as there is headroom again.
    """
    remaining = Event.tickets_sold - tickets
    result = db.execute(
        update(Event).where(Event.id == event_id).values(
            tickets_sold=case((remaining < 0, 0), else_=remaining),
            status=case(
                (
                    and_(Event.status == "sold_out", remaining < Event.capacity),
                    "published",
                ),
                else_=Event.status,
            ),
            updated_at=utcnow(),
        ).execution_options(synchronize_session=False)
    )
    db.flush()
    if result.rowcount != 1:
        logger.warning(f"Release of {tickets} tickets matched no event {event_id}")
        return
    logger.info(f"Released {tickets} tickets for event {event_id}")
