"""PaymentAllocation model - the part of a payment applied to one copay."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from copay_ledger.core.database import Base
from copay_ledger.models.shared import Money, UUIDType, generate_uuid


class PaymentAllocation(Base):
    __tablename__ = "payment_allocations"
    __table_args__ = (
        UniqueConstraint("payment_id", "copay_id", name="uq_payment_allocations_payment_copay"),
        CheckConstraint("amount >= 0", name="ck_payment_allocations_amount_non_negative"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    payment_id = Column(
        UUIDType, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    copay_id = Column(
        UUIDType, ForeignKey("copays.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    # Amount actually applied, never more than the copay's balance at allocation time
    amount = Column(Money, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    payment = relationship("Payment", back_populates="allocations")
