from copay_ledger.repositories.copay_repository import CopayRepository
from copay_ledger.repositories.credit_transaction_repository import CreditTransactionRepository
from copay_ledger.repositories.patient_credit_repository import PatientCreditRepository
from copay_ledger.repositories.patient_repository import PatientRepository
from copay_ledger.repositories.payment_allocation_repository import PaymentAllocationRepository
from copay_ledger.repositories.payment_method_repository import PaymentMethodRepository
from copay_ledger.repositories.payment_repository import PaymentRepository

__all__ = [
    "CopayRepository",
    "CreditTransactionRepository",
    "PatientCreditRepository",
    "PatientRepository",
    "PaymentAllocationRepository",
    "PaymentMethodRepository",
    "PaymentRepository",
]
