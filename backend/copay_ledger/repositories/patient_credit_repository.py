"""PatientCredit repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from copay_ledger.models.patient_credit import PatientCredit


class PatientCreditRepository:
    """Repository for PatientCredit model.

    Balance changes are single atomic UPDATE statements so concurrent credits
    and reversals for the same patient never lose an update.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_patient_id(self, patient_id: UUID) -> PatientCredit | None:
        return self.db.query(PatientCredit).filter(PatientCredit.patient_id == patient_id).first()

    def get_or_create(self, patient_id: UUID) -> PatientCredit:
        """Get the patient's credit row, creating it with a zero balance if missing."""
        credit = self.get_by_patient_id(patient_id)
        if credit is None:
            credit = PatientCredit(patient_id=patient_id, amount=Decimal("0"))
            self.db.add(credit)
            self.db.flush()
        return credit

    def increment(self, patient_id: UUID, amount: Decimal) -> bool:
        result = self.db.execute(
            update(PatientCredit)
            .where(PatientCredit.patient_id == patient_id)
            .values(amount=PatientCredit.amount + amount)
            .execution_options(synchronize_session=False)
        )
        self._expire(patient_id)
        return result.rowcount == 1  # type: ignore[attr-defined,no-any-return]

    def decrement_if_sufficient(self, patient_id: UUID, amount: Decimal) -> bool:
        """Subtract ``amount`` unless that would take the balance below zero."""
        result = self.db.execute(
            update(PatientCredit)
            .where(PatientCredit.patient_id == patient_id, PatientCredit.amount >= amount)
            .values(amount=PatientCredit.amount - amount)
            .execution_options(synchronize_session=False)
        )
        self._expire(patient_id)
        return result.rowcount == 1  # type: ignore[attr-defined,no-any-return]

    def _expire(self, patient_id: UUID) -> None:
        for obj in list(self.db.identity_map.values()):
            if isinstance(obj, PatientCredit) and obj.patient_id == patient_id:
                self.db.expire(obj)
