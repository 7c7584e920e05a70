"""Settlement service: the single entry point for "a patient paid money"."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from copay_ledger.core.config import settings
from copay_ledger.core.exceptions import (
    BusinessValidationError,
    InvalidInputError,
    ResourceNotFoundError,
)
from copay_ledger.models.copay import Copay
from copay_ledger.models.payment import Payment, PaymentStatus
from copay_ledger.repositories.copay_repository import CopayRepository
from copay_ledger.repositories.patient_repository import PatientRepository
from copay_ledger.repositories.payment_allocation_repository import PaymentAllocationRepository
from copay_ledger.repositories.payment_method_repository import PaymentMethodRepository
from copay_ledger.repositories.payment_repository import PaymentRepository
from copay_ledger.services.allocation import (
    AllocationRequest,
    allocate,
    consolidate_requests,
    validate_requests,
)
from copay_ledger.services.credit_ledger import CreditLedgerService
from copay_ledger.services.payment_processor import ProcessorGatewayBase, get_processor

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    """Outcome of a payment submission.

    ``replayed`` is True when the request key was already known and nothing
    new was written.
    """

    payment_id: UUID
    status: PaymentStatus
    amount: Decimal
    currency: str
    processor_charge_id: str | None
    replayed: bool = False

    @classmethod
    def from_payment(cls, payment: Payment, replayed: bool) -> "SubmissionResult":
        return cls(
            payment_id=UUID(str(payment.id)),
            status=PaymentStatus(payment.status),
            amount=Decimal(str(payment.amount)),
            currency=str(payment.currency),
            processor_charge_id=payment.processor_charge_id,  # type: ignore[arg-type]
            replayed=replayed,
        )


class SettlementService:
    """Idempotency check, validation, allocation, credit and dispatch as one unit of work."""

    def __init__(self, db: Session, processor: ProcessorGatewayBase | None = None):
        self.db = db
        self.processor = processor or get_processor()
        self.patient_repo = PatientRepository(db)
        self.payment_method_repo = PaymentMethodRepository(db)
        self.copay_repo = CopayRepository(db)
        self.payment_repo = PaymentRepository(db)
        self.allocation_repo = PaymentAllocationRepository(db)
        self.credit_ledger = CreditLedgerService(db)

    def submit_payment(
        self,
        patient_id: UUID,
        payment_method_id: UUID,
        currency: str,
        allocation_requests: Sequence[AllocationRequest],
        request_key: str,
    ) -> SubmissionResult:
        """Submit a payment allocated across one or more copays.

        A request key that already has a payment returns that payment's
        current id and status, whatever the status, and writes nothing.
        Otherwise the payment, its allocations, any overpayment credit and
        the processor charge id are committed together, or not at all.

        Raises:
            ResourceNotFoundError: unknown patient, inactive or foreign
                payment method, or a copay that is missing, foreign or not
                payable.
            BusinessValidationError: an allocation amount breaks the
                allocation rules.
        """
        logger.info(
            "Submitting payment for patient: %s with request key: %s", patient_id, request_key
        )

        existing = self.payment_repo.get_by_request_key(request_key)
        if existing is not None:
            logger.info("Duplicate request detected, returning existing payment: %s", existing.id)
            return SubmissionResult.from_payment(existing, replayed=True)

        try:
            payment = self._settle(
                patient_id, payment_method_id, currency, allocation_requests, request_key
            )
            result = SubmissionResult.from_payment(payment, replayed=False)
            self.db.commit()
        except IntegrityError:
            # Lost the race for this request key to a concurrent submission
            self.db.rollback()
            winner = self.payment_repo.get_by_request_key(request_key)
            if winner is None:
                raise
            logger.info(
                "Concurrent duplicate request %s resolved to payment %s", request_key, winner.id
            )
            return SubmissionResult.from_payment(winner, replayed=True)
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Payment created successfully: %s with processor charge ID: %s",
            result.payment_id,
            result.processor_charge_id,
        )
        return result

    def _settle(
        self,
        patient_id: UUID,
        payment_method_id: UUID,
        currency: str,
        allocation_requests: Sequence[AllocationRequest],
        request_key: str,
    ) -> Payment:
        if currency != settings.DEFAULT_CURRENCY:
            raise InvalidInputError("currency", currency)
        if not allocation_requests:
            raise BusinessValidationError(
                "ALLOCATIONS_EMPTY", "At least one allocation is required"
            )

        patient = self.patient_repo.get_by_id(patient_id)
        if patient is None:
            raise ResourceNotFoundError("Patient", patient_id)

        payment_method = self.payment_method_repo.get_active_for_patient(
            payment_method_id, patient_id
        )
        if payment_method is None:
            raise ResourceNotFoundError("Payment Method", payment_method_id)

        copays = self._load_payable_copays(allocation_requests, patient_id)

        # Amount rules are checked on every submitted entry, then again on
        # the merged per-copay totals that are actually allocated.
        validate_requests(allocation_requests, copays)
        allocation = allocate(consolidate_requests(allocation_requests), copays)

        payment = self.payment_repo.create(
            patient_id=patient_id,
            payment_method_id=payment_method_id,
            amount=allocation.total_requested,
            currency=currency,
            request_key=request_key,
        )
        for applied in allocation.applied:
            self.allocation_repo.create(
                payment_id=payment.id,  # type: ignore[arg-type]
                copay_id=applied.copay_id,
                amount=applied.applied_amount,
            )

        if allocation.total_excess > 0:
            self.credit_ledger.credit(
                patient_id=patient_id,
                amount=allocation.total_excess,
                payment_id=payment.id,  # type: ignore[arg-type]
            )

        handle = self.processor.submit_charge(
            payment_id=payment.id,  # type: ignore[arg-type]
            amount=allocation.total_requested,
            currency=currency,
        )
        return self.payment_repo.set_processor_charge_id(payment, handle.processor_charge_id)

    def _load_payable_copays(
        self, allocation_requests: Sequence[AllocationRequest], patient_id: UUID
    ) -> dict[UUID, Copay]:
        copay_ids = list(dict.fromkeys(r.copay_id for r in allocation_requests))
        copays = {
            UUID(str(c.id)): c
            for c in self.copay_repo.get_payable_by_ids(copay_ids, patient_id)
        }
        missing = [str(cid) for cid in copay_ids if cid not in copays]
        if missing:
            raise ResourceNotFoundError("Copay", ", ".join(missing))
        return copays
