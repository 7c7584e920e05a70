"""PatientCredit model - running credit balance per patient."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, func

from copay_ledger.core.database import Base
from copay_ledger.models.shared import Money, UUIDType, generate_uuid


class PatientCredit(Base):
    __tablename__ = "patient_credits"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_patient_credits_non_negative"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    patient_id = Column(
        UUIDType,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True,
    )
    amount = Column(Money, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
