"""CreditTransaction repository for data access. Insert and read only."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from copay_ledger.models.credit_transaction import CreditTransaction, CreditTransactionType


class CreditTransactionRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        patient_id: UUID,
        amount: Decimal,
        transaction_type: CreditTransactionType,
        payment_id: UUID | None = None,
        description: str | None = None,
    ) -> CreditTransaction:
        transaction = CreditTransaction(
            patient_id=patient_id,
            payment_id=payment_id,
            amount=amount,
            transaction_type=transaction_type.value,
            description=description,
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def get_by_payment_id(
        self,
        payment_id: UUID,
        transaction_type: CreditTransactionType | None = None,
    ) -> list[CreditTransaction]:
        query = self.db.query(CreditTransaction).filter(CreditTransaction.payment_id == payment_id)
        if transaction_type:
            query = query.filter(CreditTransaction.transaction_type == transaction_type.value)
        return query.order_by(CreditTransaction.created_at.asc()).all()

    def get_by_patient_id(self, patient_id: UUID) -> list[CreditTransaction]:
        return (
            self.db.query(CreditTransaction)
            .filter(CreditTransaction.patient_id == patient_id)
            .order_by(CreditTransaction.created_at.desc())
            .all()
        )
