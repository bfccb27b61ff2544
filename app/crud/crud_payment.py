# app/crud/crud_payment.py
from typing import List, Optional
from datetime import datetime
from sqlalchemy import and_, update
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.payment import Payment
from app.schemas.payment import PaymentCreate


class CRUDPayment(CRUDBase[Payment, PaymentCreate]):
    """CRUD operations for Payment model."""

    def get_by_booking(self, db: Session, *, booking_id: str) -> Optional[Payment]:
        """Get the payment attached to a booking, if one was opened."""
        return (
            db.query(self.model)
            .filter(self.model.booking_id == booking_id)
            .first()
        )

    def get_by_external_order_id(
        self, db: Session, *, external_order_id: str
    ) -> Optional[Payment]:
        """Get a payment by the gateway's order ID."""
        return (
            db.query(self.model)
            .filter(self.model.external_order_id == external_order_id)
            .first()
        )

    def get_by_user(self, db: Session, *, user_id: str) -> List[Payment]:
        return (
            db.query(self.model)
            .filter(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def mark_completed(
        self,
        db: Session,
        *,
        payment_id: str,
        external_payment_id: str,
        completed_at: datetime,
    ) -> bool:
        """Move a pending payment to completed. Flushes only.

        Returns False when the payment was no longer pending.
        """
        result = db.execute(
            update(Payment).where(
                and_(
                    Payment.id == payment_id,
                    Payment.status == "pending",
                )
            ).values(
                status="completed",
                external_payment_id=external_payment_id,
                completed_at=completed_at,
                updated_at=completed_at,
            ).execution_options(synchronize_session=False)
        )
        db.flush()
        return result.rowcount == 1


payment = CRUDPayment(Payment)
