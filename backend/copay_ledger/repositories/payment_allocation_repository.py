"""PaymentAllocation repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from copay_ledger.models.payment_allocation import PaymentAllocation


class PaymentAllocationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, payment_id: UUID, copay_id: UUID, amount: Decimal) -> PaymentAllocation:
        allocation = PaymentAllocation(payment_id=payment_id, copay_id=copay_id, amount=amount)
        self.db.add(allocation)
        self.db.flush()
        return allocation

    def get_by_payment_id(self, payment_id: UUID) -> list[PaymentAllocation]:
        return (
            self.db.query(PaymentAllocation)
            .filter(PaymentAllocation.payment_id == payment_id)
            .order_by(PaymentAllocation.created_at.asc())
            .all()
        )
