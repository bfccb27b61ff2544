# app/services/payment/reconciliation.py
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    SignatureMismatchError,
    ValidationError,
)
from app.models.booking import Booking
from app.models.payment import Payment
from app.schemas.payment import PaymentCreate
from app.schemas.token import TokenPayload
from app.services.booking.booking_service import BookingService
from app.utils import time as clock
from .gateway import PaymentGatewayClient
from .signature import verify_signature

logger = logging.getLogger(__name__)


def receipt_for(booking_id: str) -> str:
    # Gateways cap receipt references at 40 characters
    return f"rcpt_{booking_id}"[:40]


class PaymentReconciliationService:
    """
    Ties gateway payments to bookings.

    Flow:
    1. create_order opens a gateway order for a pending booking and stores a
       pending Payment carrying the gateway order id
    2. the client pays on the gateway and receives (payment_id, signature)
    3. reconcile checks the signature, completes the payment and confirms the
       booking (reserving its tickets) in a single commit
    """

    def __init__(self, db: Session, gateway: PaymentGatewayClient):
        self.db = db
        self.gateway = gateway
        self.bookings = BookingService(db)

    def create_order(self, booking_id: str, actor: TokenPayload) -> Payment:
        booking = crud.booking_crud.get(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        if booking.user_id != actor.sub:
            raise AuthorizationError("Not authorized to pay for this booking")

        existing = crud.payment.get_by_booking(self.db, booking_id=booking.id)
        if booking.is_paid or (existing and existing.is_successful):
            raise InvalidTransitionError("Booking is already paid")
        if booking.status != "pending":
            raise InvalidTransitionError(f"Booking is {booking.status} and cannot be paid")
        if booking.total <= 0:
            raise ValidationError("Invalid booking amount")
        if existing and existing.status == "pending":
            return existing

        currency = booking.event.currency
        order_id = self.gateway.create_order(
            amount=booking.total,
            currency=currency,
            reference=receipt_for(booking.id),
        )
        try:
            payment = crud.payment.create(
                self.db,
                obj_in=PaymentCreate(
                    booking_id=booking.id,
                    user_id=booking.user_id,
                    amount=booking.total,
                    currency=currency,
                    external_order_id=order_id,
                ),
            )
        except IntegrityError:
            # A concurrent request opened the order first; keep theirs
            self.db.rollback()
            payment = crud.payment.get_by_booking(self.db, booking_id=booking.id)
            if payment is None:
                raise
            logger.warning(f"Discarded duplicate gateway order {order_id} for booking {booking.id}")
            return payment

        logger.info(f"Payment {payment.id} opened for booking {booking.id} (order {order_id})")
        return payment

    def reconcile(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
        booking_id: str,
    ) -> Booking:
        """Complete a payment from the gateway callback and confirm its booking.

        Safe to replay: an already completed payment with a confirmed booking
        returns the booking unchanged.
        """
        if not verify_signature(order_id, payment_id, signature, settings.PAYMENT_GATEWAY_KEY_SECRET):
            logger.warning(f"Signature mismatch for gateway order {order_id}")
            raise SignatureMismatchError()

        payment = crud.payment.get_by_external_order_id(self.db, external_order_id=order_id)
        if not payment:
            raise NotFoundError("Payment", order_id)
        if payment.booking_id != booking_id:
            raise ValidationError("Payment does not belong to this booking")

        booking = crud.booking_crud.get(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)

        try:
            if payment.status == "pending":
                completed = crud.payment.mark_completed(
                    self.db,
                    payment_id=payment.id,
                    external_payment_id=payment_id,
                    completed_at=clock.utcnow(),
                )
                if not completed:
                    self.db.refresh(payment)
            if payment.status == "failed":
                raise InvalidTransitionError("Payment has failed and cannot be reconciled")
            if payment.external_payment_id and payment.external_payment_id != payment_id:
                raise ValidationError("Order was already paid with a different payment")

            confirmed = self.bookings.confirm_in_transaction(booking, external_payment_id=payment_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        if confirmed:
            logger.info(f"Payment for order {order_id} reconciled, booking {booking.id} confirmed")
        else:
            logger.info(f"Replayed reconciliation for order {order_id} ignored")
        return booking

    def payment_history(self, user_id: str) -> List[Payment]:
        return crud.payment.get_by_user(self.db, user_id=user_id)
