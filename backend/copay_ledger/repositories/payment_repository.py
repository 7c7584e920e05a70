"""Payment repository for data access."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from copay_ledger.models.payment import Payment, PaymentStatus


class PaymentRepository:
    """Repository for Payment model.

    Writes are flushed, never committed; the calling service owns the unit of work.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, payment_id: UUID) -> Payment | None:
        """Get a payment by ID."""
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    def get_by_request_key(self, request_key: str) -> Payment | None:
        """Get a payment by its client idempotency key."""
        return self.db.query(Payment).filter(Payment.request_key == request_key).first()

    def get_by_processor_charge_id(
        self, processor_charge_id: str, for_update: bool = False
    ) -> Payment | None:
        """Get a payment by processor charge ID, optionally row-locked."""
        query = self.db.query(Payment).filter(Payment.processor_charge_id == processor_charge_id)
        if for_update:
            query = query.populate_existing().with_for_update()
        return query.first()

    def get_pending_created_before(self, cutoff: datetime) -> list[Payment]:
        """Get PENDING payments created before ``cutoff``, oldest first."""
        return (
            self.db.query(Payment)
            .filter(
                Payment.status == PaymentStatus.PENDING.value,
                Payment.created_at < cutoff,
            )
            .order_by(Payment.created_at.asc())
            .all()
        )

    def create(
        self,
        patient_id: UUID,
        payment_method_id: UUID,
        amount: Decimal,
        currency: str,
        request_key: str,
    ) -> Payment:
        """Insert a PENDING payment.

        Raises ``sqlalchemy.exc.IntegrityError`` if ``request_key`` is taken.
        """
        payment = Payment(
            patient_id=patient_id,
            payment_method_id=payment_method_id,
            amount=amount,
            currency=currency,
            request_key=request_key,
            status=PaymentStatus.PENDING.value,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def set_processor_charge_id(self, payment: Payment, processor_charge_id: str) -> Payment:
        payment.processor_charge_id = processor_charge_id  # type: ignore[assignment]
        self.db.flush()
        return payment

    def transition_from_pending(
        self,
        payment: Payment,
        status: PaymentStatus,
        failure_code: str | None = None,
    ) -> bool:
        """Move a payment out of PENDING.

        The update is conditional on the stored status still being PENDING, so
        of two concurrent callers only one gets True.
        """
        values: dict[str, object] = {"status": status.value}
        if failure_code is not None:
            values["failure_code"] = failure_code
        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == PaymentStatus.PENDING.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.expire(payment)
        return result.rowcount == 1  # type: ignore[attr-defined,no-any-return]
