"""Patient API endpoints: copays, payments, credit and copay summary."""

import logging
import uuid
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from copay_ledger.core.config import settings
from copay_ledger.core.database import get_db
from copay_ledger.core.exceptions import InvalidParameterError
from copay_ledger.schemas.copay import ListCopaysResponse
from copay_ledger.schemas.copay_summary import CopaySummaryResponse
from copay_ledger.schemas.patient_credit import CreditTransactionResponse, PatientCreditResponse
from copay_ledger.schemas.payment import SubmitPaymentRequest, SubmitPaymentResponse
from copay_ledger.services.allocation import AllocationRequest
from copay_ledger.services.copay_service import CopayService
from copay_ledger.services.copay_summary_service import CopaySummaryService
from copay_ledger.services.credit_ledger import CreditLedgerService
from copay_ledger.services.payment_processor import SimulatedProcessor
from copay_ledger.services.settlement_service import SettlementService
from copay_ledger.tasks import enqueue_processor_callback

logger = logging.getLogger(__name__)

router = APIRouter()

COPAY_QUERY_PARAMS = {"status"}


async def _schedule_processor_callback(processor_charge_id: str, amount: Decimal) -> None:
    """Enqueue the simulated processor callback for a freshly dispatched charge."""
    delay = SimulatedProcessor().callback_delay()
    try:
        await enqueue_processor_callback(processor_charge_id, str(amount), delay)
    except Exception:
        logger.exception("Failed to enqueue processor callback for charge %s", processor_charge_id)


@router.get(
    "/{patient_id}/copays",
    response_model=ListCopaysResponse,
    summary="List copays",
    responses={
        400: {"description": "Invalid status value or unsupported query parameter"},
        404: {"description": "Patient not found"},
    },
)
async def list_copays(
    patient_id: UUID,
    request: Request,
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ListCopaysResponse:
    """List a patient's copays, optionally filtered by status (case-insensitive)."""
    for param in request.query_params:
        if param not in COPAY_QUERY_PARAMS:
            raise InvalidParameterError(param)

    copays = CopayService(db).list_copays(patient_id, status)
    return ListCopaysResponse(copays=copays)


@router.post(
    "/{patient_id}/payments",
    response_model=SubmitPaymentResponse,
    summary="Submit payment",
    responses={
        404: {"description": "Patient, payment method or copay not found"},
        422: {"description": "Allocation amount rejected"},
    },
)
async def submit_payment(
    patient_id: UUID,
    data: SubmitPaymentRequest,
    background_tasks: BackgroundTasks,
    duplicate_request_key: str | None = Header(default=None, alias="Duplicate-Request-Key"),
    db: Session = Depends(get_db),
) -> SubmitPaymentResponse:
    """Submit a payment allocated across one or more copays.

    Retrying with the same ``Duplicate-Request-Key`` returns the original
    payment and its current status. Without the header every call is a new
    payment.
    """
    request_key = duplicate_request_key or str(uuid.uuid4())
    allocations = [AllocationRequest(copay_id=a.copay_id, amount=a.amount) for a in data.allocations]

    result = SettlementService(db).submit_payment(
        patient_id=patient_id,
        payment_method_id=data.payment_method_id,
        currency=data.currency,
        allocation_requests=allocations,
        request_key=request_key,
    )

    if settings.PROCESSOR_CALLBACKS_ENABLED and not result.replayed and result.processor_charge_id:
        background_tasks.add_task(
            _schedule_processor_callback, result.processor_charge_id, result.amount
        )

    return SubmitPaymentResponse(payment_id=result.payment_id, status=result.status)


@router.get(
    "/{patient_id}/credit",
    response_model=PatientCreditResponse,
    summary="Get patient credit",
    responses={404: {"description": "Patient not found"}},
)
async def get_patient_credit(
    patient_id: UUID,
    db: Session = Depends(get_db),
) -> PatientCreditResponse:
    """Get a patient's credit balance and its transaction history."""
    CopayService(db).get_patient(patient_id)
    credit, transactions = CreditLedgerService(db).get_account(patient_id)
    return PatientCreditResponse(
        patient_id=patient_id,
        amount=credit.amount if credit is not None else Decimal("0.00"),  # type: ignore[arg-type]
        transactions=[CreditTransactionResponse.model_validate(t) for t in transactions],
    )


@router.get(
    "/{patient_id}/copay_summary",
    response_model=CopaySummaryResponse,
    summary="Get copay summary",
    responses={404: {"description": "Patient not found"}},
)
def get_copay_summary(
    patient_id: UUID,
    db: Session = Depends(get_db),
) -> CopaySummaryResponse:
    """Summarize a patient's copays with recommendations for front-desk staff."""
    return CopaySummaryService(db).generate_summary(patient_id)
