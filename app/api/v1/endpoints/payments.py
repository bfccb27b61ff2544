# app/api/v1/endpoints/payments.py
from typing import List
from fastapi import APIRouter, Depends, status

from app.api import deps
from app.schemas.payment import (
    CreateOrderInput,
    OrderResponse,
    Payment as PaymentSchema,
    VerifyPaymentInput,
    VerifyPaymentResponse,
)
from app.schemas.token import TokenPayload
from app.services.payment import PaymentReconciliationService
from app.services.payment.reconciliation import receipt_for

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    order_in: CreateOrderInput,
    service: PaymentReconciliationService = Depends(deps.get_reconciliation_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Opens a gateway order for a pending booking, or returns the one already open."""
    payment = service.create_order(order_in.booking_id, current_user)
    return OrderResponse(
        order_id=payment.external_order_id,
        amount=payment.amount,
        currency=payment.currency,
        receipt=receipt_for(payment.booking_id),
        key_id=service.gateway.key_id,
    )


@router.post("/verify", response_model=VerifyPaymentResponse)
def verify_payment(
    verify_in: VerifyPaymentInput,
    service: PaymentReconciliationService = Depends(deps.get_reconciliation_service),
):
    """
    Gateway callback relayed by the client after checkout.

    The HMAC signature authenticates the request, so no bearer token is needed.
    """
    booking = service.reconcile(
        order_id=verify_in.order_id,
        payment_id=verify_in.payment_id,
        signature=verify_in.signature,
        booking_id=verify_in.booking_id,
    )
    return VerifyPaymentResponse(booking=booking)


@router.get("/history", response_model=List[PaymentSchema])
def payment_history(
    service: PaymentReconciliationService = Depends(deps.get_reconciliation_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.payment_history(current_user.sub)
