"""CreditTransaction model - append-only audit trail of credit movements."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func

from copay_ledger.core.database import Base
from copay_ledger.models.shared import Money, UUIDType, generate_uuid


class CreditTransactionType(str, Enum):
    OVERPAYMENT_CREDIT = "OVERPAYMENT_CREDIT"
    CREDIT_APPLIED = "CREDIT_APPLIED"  # reserved, no workflow spends credit yet
    CREDIT_REVERSAL = "CREDIT_REVERSAL"


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    patient_id = Column(
        UUIDType, ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    payment_id = Column(
        UUIDType, ForeignKey("payments.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    amount = Column(Money, nullable=False)
    transaction_type = Column(String(20), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
