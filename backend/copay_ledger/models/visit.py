"""Visit model - a medical visit that generates a copay."""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, func

from copay_ledger.core.database import Base
from copay_ledger.models.shared import UUIDType, generate_uuid


class VisitType(str, Enum):
    OFFICE_VISIT = "OFFICE_VISIT"
    SPECIALIST_VISIT = "SPECIALIST_VISIT"
    EMERGENCY_VISIT = "EMERGENCY_VISIT"
    TELEHEALTH = "TELEHEALTH"


class Visit(Base):
    __tablename__ = "visits"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    patient_id = Column(
        UUIDType, ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    visit_date = Column(Date, nullable=False)
    doctor_name = Column(String(100), nullable=False)
    department = Column(String(100), nullable=True)
    visit_type = Column(String(50), nullable=False, default=VisitType.OFFICE_VISIT.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
