"""PaymentMethod repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from copay_ledger.models.payment_method import PaymentMethod


class PaymentMethodRepository:
    """Repository for PaymentMethod model."""

    def __init__(self, db: Session):
        self.db = db

    def get_active_for_patient(
        self, payment_method_id: UUID, patient_id: UUID
    ) -> PaymentMethod | None:
        """Get a payment method only if it belongs to the patient and is active."""
        return (
            self.db.query(PaymentMethod)
            .filter(
                PaymentMethod.id == payment_method_id,
                PaymentMethod.patient_id == patient_id,
                PaymentMethod.is_active.is_(True),
            )
            .first()
        )
