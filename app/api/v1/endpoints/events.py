# app/api/v1/endpoints/events.py
from typing import List
from fastapi import APIRouter, Depends, Query, Response, status

from app.api import deps
from app.schemas.booking import Booking as BookingSchema
from app.schemas.event import Event as EventSchema, EventCreate
from app.schemas.token import TokenPayload
from app.services.booking import BookingService
from app.services.event_service import EventService

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("", response_model=EventSchema, status_code=status.HTTP_201_CREATED)
def create_event(
    event_in: EventCreate,
    service: EventService = Depends(deps.get_event_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    """Creates a draft event owned by the calling organizer."""
    return service.create_event(event_in, current_user)


@router.get("", response_model=List[EventSchema])
def list_events(
    service: EventService = Depends(deps.get_event_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
):
    """Organizers get their own events; participants get events on sale."""
    return service.list_events(current_user, skip=skip, limit=limit)


@router.get("/{event_id}", response_model=EventSchema)
def get_event(
    event_id: str,
    service: EventService = Depends(deps.get_event_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.get_event(event_id)


@router.post("/{event_id}/publish", response_model=EventSchema)
def publish_event(
    event_id: str,
    service: EventService = Depends(deps.get_event_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    return service.transition(event_id, current_user, "published")


@router.post("/{event_id}/cancel", response_model=EventSchema)
def cancel_event(
    event_id: str,
    service: EventService = Depends(deps.get_event_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    return service.transition(event_id, current_user, "cancelled")


@router.post("/{event_id}/complete", response_model=EventSchema)
def complete_event(
    event_id: str,
    service: EventService = Depends(deps.get_event_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    return service.transition(event_id, current_user, "completed")


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    service: EventService = Depends(deps.get_event_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    """Deletes the event and every booking made for it."""
    service.delete_event(event_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/bookings", response_model=List[BookingSchema])
def list_event_bookings(
    event_id: str,
    service: BookingService = Depends(deps.get_booking_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    return service.list_event_bookings(event_id, current_user)
