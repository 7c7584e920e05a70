from copay_ledger.models.copay import PAYABLE_STATUSES, Copay, CopayStatus
from copay_ledger.models.credit_transaction import CreditTransaction, CreditTransactionType
from copay_ledger.models.patient import Patient
from copay_ledger.models.patient_credit import PatientCredit
from copay_ledger.models.payment import Payment, PaymentStatus
from copay_ledger.models.payment_allocation import PaymentAllocation
from copay_ledger.models.payment_method import PaymentMethod, PaymentMethodType
from copay_ledger.models.visit import Visit, VisitType

__all__ = [
    "PAYABLE_STATUSES",
    "Copay",
    "CopayStatus",
    "CreditTransaction",
    "CreditTransactionType",
    "Patient",
    "PatientCredit",
    "Payment",
    "PaymentAllocation",
    "PaymentMethod",
    "PaymentMethodType",
    "PaymentStatus",
    "Visit",
    "VisitType",
]
