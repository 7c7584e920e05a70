"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from copay_ledger.models.payment import PaymentStatus


class PaymentAllocationRequest(BaseModel):
    """One requested allocation. Positivity is enforced by the allocation engine."""

    copay_id: UUID
    amount: Decimal = Field(max_digits=10, decimal_places=2)


class SubmitPaymentRequest(BaseModel):
    payment_method_id: UUID
    currency: str = Field(default="USD", pattern="^USD$")
    allocations: list[PaymentAllocationRequest] = Field(min_length=1)


class SubmitPaymentResponse(BaseModel):
    payment_id: UUID
    status: PaymentStatus


class PaymentAllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    copay_id: UUID
    amount: Decimal


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_id: UUID
    payment_method_id: UUID
    amount: Decimal
    currency: str
    status: str
    request_key: str
    processor_charge_id: str | None = None
    failure_code: str | None = None
    allocations: list[PaymentAllocationResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
