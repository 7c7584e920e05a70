"""Patient repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from copay_ledger.models.patient import Patient


class PatientRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, patient_id: UUID) -> Patient | None:
        return self.db.query(Patient).filter(Patient.id == patient_id).first()
