"""Credit ledger: per-patient credit balance plus its audit trail."""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from copay_ledger.core.exceptions import CreditLedgerInvariantError
from copay_ledger.models.credit_transaction import CreditTransaction, CreditTransactionType
from copay_ledger.models.patient_credit import PatientCredit
from copay_ledger.repositories.credit_transaction_repository import CreditTransactionRepository
from copay_ledger.repositories.patient_credit_repository import PatientCreditRepository

logger = logging.getLogger(__name__)

OVERPAYMENT_DESCRIPTION = "Overpayment credit from payment {payment_id}"
REVERSAL_DESCRIPTION = "Reversal of overpayment credit {transaction_id} for failed payment {payment_id}"


class CreditLedgerService:
    """Credits and reversals of patient credit.

    Never commits: both operations run inside the caller's unit of work.
    """

    def __init__(self, db: Session):
        self.db = db
        self.credit_repo = PatientCreditRepository(db)
        self.txn_repo = CreditTransactionRepository(db)

    def credit(self, patient_id: UUID, amount: Decimal, payment_id: UUID | None) -> CreditTransaction:
        """Add overpayment credit to a patient and record the audit entry."""
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        self.credit_repo.get_or_create(patient_id)
        self.credit_repo.increment(patient_id, amount)

        logger.info("Credited %s to patient %s for payment %s", amount, patient_id, payment_id)
        return self.txn_repo.create(
            patient_id=patient_id,
            payment_id=payment_id,
            amount=amount,
            transaction_type=CreditTransactionType.OVERPAYMENT_CREDIT,
            description=OVERPAYMENT_DESCRIPTION.format(payment_id=payment_id),
        )

    def reverse_for_payment(self, payment_id: UUID) -> Decimal:
        """Take back every overpayment credit issued for ``payment_id``.

        Each reversal is recorded as a CREDIT_REVERSAL entry next to the
        original credit. Returns the total reversed.

        Raises:
            CreditLedgerInvariantError: the patient has no credit row, or the
                balance is smaller than a credit it supposedly received.
        """
        credits = self.txn_repo.get_by_payment_id(
            payment_id, CreditTransactionType.OVERPAYMENT_CREDIT
        )
        total = Decimal("0")
        for txn in credits:
            patient_id = UUID(str(txn.patient_id))
            amount = Decimal(str(txn.amount))

            if self.credit_repo.get_by_patient_id(patient_id) is None:
                raise CreditLedgerInvariantError(
                    f"No credit balance for patient {patient_id} while reversing "
                    f"credit transaction {txn.id}",
                    details={"patient_id": str(patient_id), "transaction_id": str(txn.id)},
                )
            if not self.credit_repo.decrement_if_sufficient(patient_id, amount):
                raise CreditLedgerInvariantError(
                    f"Credit balance for patient {patient_id} is below the {amount} "
                    f"being reversed for payment {payment_id}",
                    details={"patient_id": str(patient_id), "payment_id": str(payment_id)},
                )

            self.txn_repo.create(
                patient_id=patient_id,
                payment_id=payment_id,
                amount=amount,
                transaction_type=CreditTransactionType.CREDIT_REVERSAL,
                description=REVERSAL_DESCRIPTION.format(
                    transaction_id=txn.id, payment_id=payment_id
                ),
            )
            total += amount
            logger.info("Reversed credit of %s for failed payment %s", amount, payment_id)
        return total

    def get_balance(self, patient_id: UUID) -> Decimal:
        credit = self.credit_repo.get_by_patient_id(patient_id)
        if credit is None:
            return Decimal("0")
        return Decimal(str(credit.amount))

    def get_account(self, patient_id: UUID) -> tuple[PatientCredit | None, list[CreditTransaction]]:
        return (
            self.credit_repo.get_by_patient_id(patient_id),
            self.txn_repo.get_by_patient_id(patient_id),
        )
