"""
Tests for EventService lifecycle transitions and attendance statistics.
"""

from datetime import datetime, timezone

import pytest

from app.core.errors import AuthorizationError, InvalidTransitionError
from app.models.booking import Booking
from app.services.booking import AttendanceVerifier
from app.services.event_service import EventService
from tests.utils.booking import create_confirmed_booking, create_random_event

EVENT_START = datetime(2030, 6, 2, 0, 0, tzinfo=timezone.utc)


class TestTransitions:
    def test_complete_requires_published_event(self, db_session, organizer):
        event = create_random_event(db_session, organizer.sub, publish=False)

        with pytest.raises(InvalidTransitionError) as exc_info:
            EventService(db_session).transition(event.id, organizer, "completed")

        assert exc_info.value.message == "Cannot move event from draft to completed"

    def test_cancelled_event_keeps_bookings(self, db_session, organizer, participant):
        event = create_random_event(db_session, organizer.sub)
        booking = create_confirmed_booking(db_session, event, participant)

        cancelled = EventService(db_session).transition(event.id, organizer, "cancelled")

        assert cancelled.status == "cancelled"
        assert db_session.get(Booking, booking.id).status == "confirmed"

    def test_sold_out_event_can_complete(self, db_session, organizer, participant):
        event = create_random_event(db_session, organizer.sub, capacity=1)
        create_confirmed_booking(db_session, event, participant)

        completed = EventService(db_session).transition(event.id, organizer, "completed")

        assert completed.status == "completed"

    def test_delete_by_other_organizer(self, db_session, organizer, other_organizer):
        event = create_random_event(db_session, organizer.sub)

        with pytest.raises(AuthorizationError):
            EventService(db_session).delete_event(event.id, other_organizer)


class TestStatistics:
    def test_attendance_percentage(self, db_session, organizer, participant, other_participant, clock):
        event = create_random_event(
            db_session, organizer.sub, price=2000, starts_at=EVENT_START
        )
        admitted = create_confirmed_booking(db_session, event, participant, tickets=1)
        create_confirmed_booking(db_session, event, other_participant, tickets=2)
        AttendanceVerifier(db_session).verify_credential(admitted.ticket_id, organizer)

        [stats] = EventService(db_session).get_event_statistics(organizer)

        assert stats.total_tickets == 3
        assert stats.total_revenue == 6000
        assert stats.bookings_count == 2
        assert stats.total_attendees == 1
        assert stats.attendance_percentage == 33.33
        assert [d.user_id for d in stats.attendance_details] == [participant.sub]
        assert stats.attendance_details[0].verified_at == clock.now

    def test_statistics_only_cover_own_events(self, db_session, organizer, other_organizer):
        create_random_event(db_session, organizer.sub)

        assert EventService(db_session).get_event_statistics(other_organizer) == []
