"""Copay repository for data access."""

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from copay_ledger.models.copay import PAYABLE_STATUSES, Copay, CopayStatus
from copay_ledger.models.visit import Visit


class CopayRepository:
    """Repository for Copay model.

    Balance writes only go through ``update_balance_if_unchanged``, a
    compare-and-set on the row version.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, copay_id: UUID) -> Copay | None:
        return self.db.query(Copay).filter(Copay.id == copay_id).first()

    def get_by_patient_id(
        self, patient_id: UUID, status: CopayStatus | None = None
    ) -> list[Copay]:
        """Get a patient's copays, newest visit first, optionally filtered by status."""
        query = self.db.query(Copay).join(Visit, Copay.visit_id == Visit.id)
        query = query.filter(Visit.patient_id == patient_id)
        if status:
            query = query.filter(Copay.status == status.value)
        return query.order_by(Visit.visit_date.desc(), Copay.created_at.desc()).all()

    def get_payable_by_ids(self, copay_ids: Sequence[UUID], patient_id: UUID) -> list[Copay]:
        """Get the copays among ``copay_ids`` that belong to the patient and accept payments."""
        if not copay_ids:
            return []
        return (
            self.db.query(Copay)
            .join(Visit, Copay.visit_id == Visit.id)
            .filter(
                Copay.id.in_(list(copay_ids)),
                Visit.patient_id == patient_id,
                Copay.status.in_(PAYABLE_STATUSES),
            )
            .all()
        )

    def get_for_update(self, copay_id: UUID) -> Copay | None:
        """Re-read a copay from the database, row-locked where the backend supports it."""
        return (
            self.db.query(Copay)
            .filter(Copay.id == copay_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def update_balance_if_unchanged(
        self,
        copay_id: UUID,
        expected_version: int,
        remaining_balance: Decimal,
        status: CopayStatus,
    ) -> bool:
        """Write a new balance and status unless another writer got there first.

        Returns False when the stored version is no longer ``expected_version``.
        """
        result = self.db.execute(
            update(Copay)
            .where(Copay.id == copay_id, Copay.version == expected_version)
            .values(
                remaining_balance=remaining_balance,
                status=status.value,
                version=Copay.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        copay = self.db.get(Copay, copay_id)
        if copay is not None:
            self.db.expire(copay)
        return result.rowcount == 1  # type: ignore[attr-defined,no-any-return]
