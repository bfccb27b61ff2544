"""
Tests for PaymentReconciliationService.

Covers gateway order creation for pending bookings and the reconciliation
callback: signature checks, replay safety, and the single commit that
completes a payment together with its booking.
"""

import pytest

from app.core.errors import (
    AuthorizationError,
    CapacityError,
    GatewayError,
    InvalidTransitionError,
    NotFoundError,
    SignatureMismatchError,
    ValidationError,
)
from app.models.booking import Booking
from app.models.event import Event
from app.models.payment import Payment
from app.services.payment import PaymentReconciliationService
from app.services.payment.reconciliation import receipt_for
from tests.utils.auth import ORGANIZER_ID
from tests.utils.booking import (
    create_confirmed_booking,
    create_pending_booking,
    create_random_event,
    sign,
)


@pytest.fixture
def service(db_session, gateway):
    return PaymentReconciliationService(db_session, gateway)


@pytest.fixture
def pending_booking(db_session, participant):
    event = create_random_event(db_session, ORGANIZER_ID, capacity=5, price=25000)
    return create_pending_booking(db_session, event, participant, tickets=2)


class TestCreateOrder:
    def test_opens_gateway_order(self, service, gateway, pending_booking, participant):
        payment = service.create_order(pending_booking.id, participant)

        assert payment.external_order_id == "order_test0001"
        assert payment.amount == 50000
        assert payment.currency == "INR"
        assert payment.status == "pending"
        assert payment.user_id == participant.sub
        gateway.create_order.assert_called_once_with(
            amount=50000, currency="INR", reference=receipt_for(pending_booking.id)
        )

    def test_returns_existing_pending_order(self, service, gateway, pending_booking, participant):
        first = service.create_order(pending_booking.id, participant)
        second = service.create_order(pending_booking.id, participant)

        assert first.id == second.id
        assert gateway.create_order.call_count == 1

    def test_only_owner_can_pay(self, service, gateway, pending_booking, other_participant):
        with pytest.raises(AuthorizationError):
            service.create_order(pending_booking.id, other_participant)

        gateway.create_order.assert_not_called()

    def test_unknown_booking(self, service, participant):
        with pytest.raises(NotFoundError):
            service.create_order("bkg_missing", participant)

    def test_paid_booking_rejected(self, db_session, service, gateway, participant):
        event = create_random_event(db_session, ORGANIZER_ID)
        booking = create_confirmed_booking(db_session, event, participant)

        with pytest.raises(InvalidTransitionError) as exc_info:
            service.create_order(booking.id, participant)

        assert exc_info.value.message == "Booking is already paid"
        gateway.create_order.assert_not_called()

    def test_free_booking_rejected(self, db_session, service, participant):
        event = create_random_event(db_session, ORGANIZER_ID, price=0)
        booking = create_pending_booking(db_session, event, participant)

        with pytest.raises(ValidationError):
            service.create_order(booking.id, participant)

    def test_gateway_failure_stores_nothing(self, db_session, service, gateway, pending_booking, participant):
        gateway.create_order.side_effect = GatewayError("Payment service is temporarily unavailable")

        with pytest.raises(GatewayError):
            service.create_order(pending_booking.id, participant)

        assert db_session.query(Payment).count() == 0

    def test_receipt_reference_is_capped(self):
        assert len(receipt_for("bkg_" + "x" * 60)) == 40


class TestReconcile:
    def _open_order(self, service, booking, actor):
        return service.create_order(booking.id, actor).external_order_id

    def test_completes_payment_and_confirms_booking(
        self, db_session, service, pending_booking, participant, clock
    ):
        order_id = self._open_order(service, pending_booking, participant)

        booking = service.reconcile(order_id, "pay_ext001", sign(order_id, "pay_ext001"), pending_booking.id)

        assert booking.status == "confirmed"
        assert booking.payment_status == "completed"
        assert booking.invitation_code is not None
        payment = db_session.query(Payment).one()
        assert payment.status == "completed"
        assert payment.external_payment_id == "pay_ext001"
        assert payment.completed_at is not None
        event = db_session.get(Event, pending_booking.event_id)
        assert event.tickets_sold == 2

    def test_tampered_signature_mutates_nothing(self, db_session, service, pending_booking, participant):
        order_id = self._open_order(service, pending_booking, participant)
        signature = sign(order_id, "pay_ext001")
        tampered = signature[:-1] + ("0" if signature[-1] != "0" else "1")

        with pytest.raises(SignatureMismatchError):
            service.reconcile(order_id, "pay_ext001", tampered, pending_booking.id)

        db_session.expire_all()
        assert db_session.query(Payment).one().status == "pending"
        assert db_session.get(Booking, pending_booking.id).status == "pending"
        assert db_session.get(Event, pending_booking.event_id).tickets_sold == 0

    def test_replay_is_a_no_op(self, db_session, service, pending_booking, participant):
        order_id = self._open_order(service, pending_booking, participant)
        signature = sign(order_id, "pay_ext001")

        first = service.reconcile(order_id, "pay_ext001", signature, pending_booking.id)
        confirmed_at = first.updated_at
        second = service.reconcile(order_id, "pay_ext001", signature, pending_booking.id)

        assert second.status == "confirmed"
        assert second.updated_at == confirmed_at
        assert db_session.get(Event, pending_booking.event_id).tickets_sold == 2

    def test_second_payment_for_same_order_rejected(self, db_session, service, pending_booking, participant):
        order_id = self._open_order(service, pending_booking, participant)
        service.reconcile(order_id, "pay_ext001", sign(order_id, "pay_ext001"), pending_booking.id)

        with pytest.raises(ValidationError):
            service.reconcile(order_id, "pay_ext002", sign(order_id, "pay_ext002"), pending_booking.id)

        assert db_session.query(Payment).one().external_payment_id == "pay_ext001"

    def test_order_for_other_booking(self, db_session, service, pending_booking, participant, other_participant):
        order_id = self._open_order(service, pending_booking, participant)
        event = db_session.get(Event, pending_booking.event_id)
        other = create_pending_booking(db_session, event, other_participant)

        with pytest.raises(ValidationError):
            service.reconcile(order_id, "pay_ext001", sign(order_id, "pay_ext001"), other.id)

        db_session.expire_all()
        assert db_session.query(Payment).one().status == "pending"

    def test_unknown_order(self, service, pending_booking):
        with pytest.raises(NotFoundError):
            service.reconcile("order_missing", "pay_ext001", sign("order_missing", "pay_ext001"), pending_booking.id)

    def test_capacity_exhausted_rolls_back_payment(
        self, db_session, service, participant, other_participant
    ):
        event = create_random_event(db_session, ORGANIZER_ID, capacity=2)
        late = create_pending_booking(db_session, event, participant, tickets=2)
        order_id = self._open_order(service, late, participant)
        create_confirmed_booking(db_session, event, other_participant, tickets=1)

        with pytest.raises(CapacityError) as exc_info:
            service.reconcile(order_id, "pay_ext001", sign(order_id, "pay_ext001"), late.id)

        assert exc_info.value.available == 1
        db_session.expire_all()
        assert db_session.query(Payment).one().status == "pending"
        assert db_session.get(Booking, late.id).status == "pending"
        assert db_session.get(Event, event.id).tickets_sold == 1

    def test_payment_history(self, service, pending_booking, participant, other_participant):
        service.create_order(pending_booking.id, participant)

        assert len(service.payment_history(participant.sub)) == 1
        assert service.payment_history(other_participant.sub) == []
