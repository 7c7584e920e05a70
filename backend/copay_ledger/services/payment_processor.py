"""Payment processor gateway abstraction.

A gateway accepts a payment for out-of-band processing and hands back an
opaque charge id straight away. The outcome arrives later as a webhook on
``/v1/webhooks/processor``; there is no synchronous result.
"""

import logging
import random
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from copay_ledger.core.config import settings
from copay_ledger.schemas.webhook import CHARGE_FAILED, CHARGE_SUCCEEDED

logger = logging.getLogger(__name__)

FAILURE_CODES = (
    "card_declined",
    "insufficient_funds",
    "card_expired",
    "processing_error",
    "network_error",
)


class ProcessorName(str, Enum):
    SIMULATED = "simulated"


@dataclass
class ChargeHandle:
    """What a gateway returns when it accepts a charge."""

    processor_charge_id: str
    amount: Decimal
    currency: str


@dataclass
class ChargeOutcome:
    """A terminal outcome, shaped like the webhook the processor will send."""

    event_type: str
    processor_charge_id: str
    amount: Decimal
    failure_code: str | None = None

    def to_payload(self) -> dict[str, str]:
        payload = {
            "type": self.event_type,
            "processor_charge_id": self.processor_charge_id,
            "amount": str(self.amount),
        }
        if self.failure_code:
            payload["failure_code"] = self.failure_code
        return payload


class ProcessorGatewayBase(ABC):
    """Abstract base class for payment processor gateways."""

    @property
    @abstractmethod
    def processor_name(self) -> ProcessorName:
        """Return the processor enum value."""
        pass  # pragma: no cover

    @abstractmethod
    def submit_charge(self, payment_id: UUID, amount: Decimal, currency: str) -> ChargeHandle:
        """Accept a charge for asynchronous processing."""
        pass  # pragma: no cover


class SimulatedProcessor(ProcessorGatewayBase):
    """Stands in for a real processor during development.

    ``submit_charge`` only mints a charge id. The callback itself is sent by
    the ``simulate_processor_callback_task`` worker job, which uses
    ``decide_outcome`` to pick success or a random failure code.
    """

    def __init__(self, success_rate: float | None = None, rng: random.Random | None = None):
        self.success_rate = (
            success_rate if success_rate is not None else settings.PROCESSOR_SUCCESS_RATE
        )
        self.rng = rng or random.Random()

    @property
    def processor_name(self) -> ProcessorName:
        return ProcessorName.SIMULATED

    def submit_charge(self, payment_id: UUID, amount: Decimal, currency: str) -> ChargeHandle:
        charge_id = f"ch_{uuid.uuid4().hex[:8]}"
        logger.info("Processing payment %s with processor, charge ID: %s", payment_id, charge_id)
        return ChargeHandle(processor_charge_id=charge_id, amount=amount, currency=currency)

    def decide_outcome(self, processor_charge_id: str, amount: Decimal) -> ChargeOutcome:
        if self.rng.random() < self.success_rate:
            return ChargeOutcome(CHARGE_SUCCEEDED, processor_charge_id, amount)
        return ChargeOutcome(
            CHARGE_FAILED,
            processor_charge_id,
            amount,
            failure_code=self.rng.choice(FAILURE_CODES),
        )

    def callback_delay(self) -> float:
        """Seconds the simulated processor takes before calling back."""
        return self.rng.uniform(
            settings.PROCESSOR_MIN_DELAY_SECONDS, settings.PROCESSOR_MAX_DELAY_SECONDS
        )


def get_processor(name: ProcessorName = ProcessorName.SIMULATED) -> ProcessorGatewayBase:
    """Factory function to get a processor gateway instance."""
    if name == ProcessorName.SIMULATED:
        return SimulatedProcessor()
    raise ValueError(f"Unknown payment processor: {name}")
