# app/api/v1/endpoints/reports.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.api import deps
from app.schemas.event import EventStatistics
from app.schemas.token import TokenPayload
from app.services.event_service import EventService

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/events/statistics", response_model=List[EventStatistics])
def get_event_statistics(
    event_id: Optional[str] = Query(None, description="Limit the report to one event"),
    service: EventService = Depends(deps.get_event_service),
    current_user: TokenPayload = Depends(deps.require_organizer),
):
    """Tickets sold, revenue and attendance for the organizer's events."""
    return service.get_event_statistics(current_user, event_id=event_id)
