"""Webhook reconciler: applies processor outcomes to payments exactly once."""

import logging
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy.orm import Session

from copay_ledger.core.exceptions import ConcurrencyConflictError, ResourceNotFoundError
from copay_ledger.models.copay import CopayStatus
from copay_ledger.models.payment import PaymentStatus
from copay_ledger.repositories.copay_repository import CopayRepository
from copay_ledger.repositories.payment_allocation_repository import PaymentAllocationRepository
from copay_ledger.repositories.payment_repository import PaymentRepository
from copay_ledger.schemas.webhook import CHARGE_FAILED, CHARGE_SUCCEEDED
from copay_ledger.services.allocation import derive_copay_status
from copay_ledger.services.credit_ledger import CreditLedgerService

logger = logging.getLogger(__name__)

MAX_BALANCE_UPDATE_ATTEMPTS = 3


class ReconcileResult(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


class WebhookReconciler:
    """Applies ``charge.succeeded`` / ``charge.failed`` callbacks.

    Only a PENDING payment is ever changed. Every later callback for the same
    charge, duplicate or out of order, is absorbed without error.
    """

    def __init__(self, db: Session):
        self.db = db
        self.payment_repo = PaymentRepository(db)
        self.allocation_repo = PaymentAllocationRepository(db)
        self.copay_repo = CopayRepository(db)
        self.credit_ledger = CreditLedgerService(db)

    def handle_outcome(
        self,
        event_type: str,
        processor_charge_id: str,
        amount: Decimal | None = None,
        failure_code: str | None = None,
    ) -> ReconcileResult:
        """Apply one processor callback and commit.

        Raises:
            ResourceNotFoundError: no payment carries ``processor_charge_id``.
                The processor should retry delivery.
        """
        logger.info("Processing webhook event: %s for charge: %s", event_type, processor_charge_id)
        try:
            result = self._handle(event_type, processor_charge_id, amount, failure_code)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result

    def _handle(
        self,
        event_type: str,
        processor_charge_id: str,
        amount: Decimal | None,
        failure_code: str | None,
    ) -> ReconcileResult:
        payment = self.payment_repo.get_by_processor_charge_id(processor_charge_id, for_update=True)
        if payment is None:
            raise ResourceNotFoundError("Payment", processor_charge_id)

        payment_id = UUID(str(payment.id))
        patient_id = UUID(str(payment.patient_id))

        if payment.status != PaymentStatus.PENDING.value:
            logger.warning(
                "Duplicate Process: Payment %s is not in PENDING status, current status: %s",
                payment_id,
                payment.status,
            )
            return ReconcileResult.DUPLICATE

        # Reported amount is informational only
        if amount is not None and Decimal(str(amount)) != Decimal(str(payment.amount)):
            logger.warning(
                "Webhook amount %s for charge %s differs from payment %s amount %s",
                amount,
                processor_charge_id,
                payment_id,
                payment.amount,
            )

        if event_type == CHARGE_SUCCEEDED:
            if not self.payment_repo.transition_from_pending(payment, PaymentStatus.SUCCEEDED):
                return self._lost_race(payment_id)
            self._apply_allocations(payment_id, patient_id)
            logger.info("Payment %s succeeded, updated copay statuses", payment_id)
            return ReconcileResult.SUCCEEDED

        if event_type == CHARGE_FAILED:
            if not self.payment_repo.transition_from_pending(
                payment, PaymentStatus.FAILED, failure_code=failure_code
            ):
                return self._lost_race(payment_id)
            self.credit_ledger.reverse_for_payment(payment_id)
            logger.info("Payment %s failed with code: %s", payment_id, failure_code)
            return ReconcileResult.FAILED

        logger.info("Ignoring unrecognized webhook event type %s for payment %s", event_type, payment_id)
        return ReconcileResult.IGNORED

    def _lost_race(self, payment_id: UUID) -> ReconcileResult:
        logger.warning("Payment %s was settled by a concurrent webhook delivery", payment_id)
        return ReconcileResult.DUPLICATE

    def _apply_allocations(self, payment_id: UUID, patient_id: UUID) -> None:
        for allocation in self.allocation_repo.get_by_payment_id(payment_id):
            allocated = Decimal(str(allocation.amount))
            applied = self._decrement_copay(UUID(str(allocation.copay_id)), allocated)
            shortfall = allocated - applied
            if shortfall > 0:
                # Another payment reached this copay first; keep the money as credit
                logger.warning(
                    "Copay %s could only absorb %s of %s from payment %s, crediting %s",
                    allocation.copay_id,
                    applied,
                    allocated,
                    payment_id,
                    shortfall,
                )
                self.credit_ledger.credit(patient_id, shortfall, payment_id)

    def _decrement_copay(self, copay_id: UUID, amount: Decimal) -> Decimal:
        """Reduce a copay's remaining balance by up to ``amount``; return what was applied."""
        for _ in range(MAX_BALANCE_UPDATE_ATTEMPTS):
            copay = self.copay_repo.get_for_update(copay_id)
            if copay is None:
                raise ResourceNotFoundError("Copay", copay_id)

            expected_version = int(copay.version)
            remaining = Decimal(str(copay.remaining_balance))
            applied = min(amount, remaining)
            new_remaining = remaining - applied
            new_status = derive_copay_status(
                Decimal(str(copay.amount)), new_remaining, CopayStatus(copay.status)
            )

            if self.copay_repo.update_balance_if_unchanged(
                copay_id, expected_version, new_remaining, new_status
            ):
                logger.info(
                    "Copay %s marked as %s, remaining: %s", copay_id, new_status.value, new_remaining
                )
                return applied

        raise ConcurrencyConflictError(
            f"Copay {copay_id} kept changing while applying a payment",
            details={"copay_id": str(copay_id)},
        )
