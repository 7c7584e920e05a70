"""Copay schemas (read model)."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field


class CopayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    visit_id: UUID
    patient_id: UUID
    amount: Decimal
    remaining_balance: Decimal
    status: str
    visit_date: date | None = None
    doctor_name: str | None = None
    department: str | None = None
    visit_type: str | None = None
    created_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def paid_amount(self) -> Decimal:
        return self.amount - self.remaining_balance


class ListCopaysResponse(BaseModel):
    copays: list[CopayResponse]
