"""Payment processor webhook schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field

CHARGE_SUCCEEDED = "charge.succeeded"
CHARGE_FAILED = "charge.failed"


class ProcessorWebhookEvent(BaseModel):
    """Callback body posted by the payment processor."""

    type: str = Field(min_length=1)
    processor_charge_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    failure_code: str | None = Field(default=None, max_length=50)
