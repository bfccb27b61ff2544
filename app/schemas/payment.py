# app/schemas/payment.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.schemas.booking import Booking, PaymentStatus


class CreateOrderInput(BaseModel):
    booking_id: str


class PaymentCreate(BaseModel):
    """Internal: the payment row staged when a gateway order is opened."""
    booking_id: str
    user_id: str
    amount: int
    currency: str
    external_order_id: str


class OrderResponse(BaseModel):
    """Everything the client needs to open the gateway checkout."""
    order_id: str
    amount: int = Field(..., description="Amount in smallest currency unit")
    currency: str
    receipt: str
    key_id: str


class VerifyPaymentInput(BaseModel):
    order_id: str
    payment_id: str
    signature: str
    booking_id: str


class Payment(BaseModel):
    id: str
    booking_id: str
    user_id: str
    amount: int
    currency: str
    external_order_id: str
    external_payment_id: Optional[str] = None
    status: PaymentStatus
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class VerifyPaymentResponse(BaseModel):
    booking: Booking
    message: str = "Payment verified successfully"
