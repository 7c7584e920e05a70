"""Copay model - a fixed obligation generated by a visit."""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from copay_ledger.core.database import Base
from copay_ledger.models.shared import Money, UUIDType, generate_uuid


class CopayStatus(str, Enum):
    PAYABLE = "PAYABLE"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    WRITE_OFF = "WRITE_OFF"


PAYABLE_STATUSES = (CopayStatus.PAYABLE.value, CopayStatus.PARTIALLY_PAID.value)


class Copay(Base):
    """Copay model.

    ``remaining_balance`` is only ever decreased, and only by the webhook
    reconciler through ``CopayRepository.update_balance_if_unchanged``; ``version`` is bumped
    on every such write so concurrent decrements can detect each other.
    """

    __tablename__ = "copays"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_copays_amount_positive"),
        CheckConstraint("remaining_balance >= 0", name="ck_copays_remaining_non_negative"),
        CheckConstraint("remaining_balance <= amount", name="ck_copays_remaining_within_amount"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    visit_id = Column(
        UUIDType, ForeignKey("visits.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount = Column(Money, nullable=False)
    remaining_balance = Column(Money, nullable=False)
    status = Column(String(20), nullable=False, default=CopayStatus.PAYABLE.value, index=True)
    version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    visit = relationship("Visit")
