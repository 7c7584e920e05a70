"""PaymentMethod model for storing patient payment methods."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, func

from copay_ledger.core.database import Base
from copay_ledger.models.shared import UUIDType, generate_uuid


class PaymentMethodType(str, Enum):
    CARD = "CARD"
    BANK_ACCOUNT = "BANK_ACCOUNT"
    DIGITAL_WALLET = "DIGITAL_WALLET"


class PaymentMethod(Base):
    """PaymentMethod model - stores saved payment methods for patients."""

    __tablename__ = "payment_methods"
    __table_args__ = (
        UniqueConstraint(
            "patient_id", "type", "provider", "last_four", name="uq_payment_methods_patient_card"
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    patient_id = Column(
        UUIDType, ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    type = Column(String(50), nullable=False)  # CARD / BANK_ACCOUNT / DIGITAL_WALLET
    provider = Column(String(50), nullable=False)  # VISA / CHASE / Apple Pay ...
    last_four = Column(String(4), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
