"""Copay read model: a patient's copays joined with their visits."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from copay_ledger.core.exceptions import InvalidInputError, ResourceNotFoundError
from copay_ledger.models.copay import Copay, CopayStatus
from copay_ledger.models.patient import Patient
from copay_ledger.repositories.copay_repository import CopayRepository
from copay_ledger.repositories.patient_repository import PatientRepository
from copay_ledger.schemas.copay import CopayResponse

logger = logging.getLogger(__name__)


def parse_copay_status(value: str | None) -> CopayStatus | None:
    """Parse a status filter, ignoring case. ``None`` or blank means no filter."""
    if value is None or not value.strip():
        return None
    try:
        return CopayStatus(value.strip().upper())
    except ValueError:
        raise InvalidInputError("status", value) from None


def to_copay_response(copay: Copay) -> CopayResponse:
    visit = copay.visit
    return CopayResponse(
        id=copay.id,  # type: ignore[arg-type]
        visit_id=copay.visit_id,  # type: ignore[arg-type]
        patient_id=visit.patient_id,
        amount=copay.amount,  # type: ignore[arg-type]
        remaining_balance=copay.remaining_balance,  # type: ignore[arg-type]
        status=str(copay.status),
        visit_date=visit.visit_date,
        doctor_name=visit.doctor_name,
        department=visit.department,
        visit_type=visit.visit_type,
        created_at=copay.created_at,  # type: ignore[arg-type]
    )


class CopayService:
    def __init__(self, db: Session):
        self.db = db
        self.patient_repo = PatientRepository(db)
        self.copay_repo = CopayRepository(db)

    def get_patient(self, patient_id: UUID) -> Patient:
        patient = self.patient_repo.get_by_id(patient_id)
        if patient is None:
            raise ResourceNotFoundError("Patient", patient_id)
        return patient

    def list_copays(self, patient_id: UUID, status: str | None = None) -> list[CopayResponse]:
        """List a patient's copays, newest visit first.

        Raises:
            ResourceNotFoundError: the patient does not exist.
            InvalidInputError: ``status`` is not a copay status.
        """
        status_filter = parse_copay_status(status)
        self.get_patient(patient_id)

        copays = self.copay_repo.get_by_patient_id(patient_id, status_filter)
        logger.info("Found %d copays for patient %s", len(copays), patient_id)
        return [to_copay_response(c) for c in copays]
