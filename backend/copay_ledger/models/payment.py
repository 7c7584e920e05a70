"""Payment model for tracking patient payment intents."""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, func
from sqlalchemy.orm import relationship

from copay_ledger.core.database import Base
from copay_ledger.models.shared import Money, UUIDType, generate_uuid


class PaymentStatus(str, Enum):
    """Payment status enum. SUCCEEDED and FAILED are terminal."""

    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class Payment(Base):
    """Payment model - one client-submitted payment against one or more copays."""

    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_payments_amount_positive"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    patient_id = Column(
        UUIDType, ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    payment_method_id = Column(
        UUIDType, ForeignKey("payment_methods.id", ondelete="RESTRICT"), nullable=False
    )

    # Sum of the requested allocation amounts, including any excess
    amount = Column(Money, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)

    request_key = Column(String(255), nullable=False, unique=True)
    processor_charge_id = Column(String(255), nullable=True, unique=True)
    failure_code = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    allocations = relationship(
        "PaymentAllocation",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentAllocation.created_at",
    )
