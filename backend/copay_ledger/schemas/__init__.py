from copay_ledger.schemas.copay import CopayResponse, ListCopaysResponse
from copay_ledger.schemas.copay_summary import (
    CopaySummaryResponse,
    FinancialOverview,
    SummarySource,
)
from copay_ledger.schemas.error import ErrorResponse
from copay_ledger.schemas.patient_credit import CreditTransactionResponse, PatientCreditResponse
from copay_ledger.schemas.payment import (
    PaymentAllocationRequest,
    PaymentAllocationResponse,
    PaymentResponse,
    SubmitPaymentRequest,
    SubmitPaymentResponse,
)
from copay_ledger.schemas.webhook import ProcessorWebhookEvent

__all__ = [
    "CopayResponse",
    "CopaySummaryResponse",
    "CreditTransactionResponse",
    "ErrorResponse",
    "FinancialOverview",
    "ListCopaysResponse",
    "PatientCreditResponse",
    "PaymentAllocationRequest",
    "PaymentAllocationResponse",
    "PaymentResponse",
    "ProcessorWebhookEvent",
    "SubmitPaymentRequest",
    "SubmitPaymentResponse",
    "SummarySource",
]
