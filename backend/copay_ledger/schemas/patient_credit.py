"""Patient credit schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class CreditTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payment_id: UUID | None = None
    amount: Decimal
    transaction_type: str
    description: str | None = None
    created_at: datetime | None = None


class PatientCreditResponse(BaseModel):
    patient_id: UUID
    amount: Decimal
    transactions: list[CreditTransactionResponse]
