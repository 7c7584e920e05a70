"""Payment processor webhook endpoint."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from copay_ledger.core.database import get_db
from copay_ledger.schemas.webhook import ProcessorWebhookEvent
from copay_ledger.services.webhook_reconciler import WebhookReconciler

router = APIRouter()


@router.post(
    "/processor",
    status_code=200,
    summary="Processor callback",
    responses={404: {"description": "No payment carries this processor charge id"}},
)
async def handle_processor_webhook(
    event: ProcessorWebhookEvent,
    db: Session = Depends(get_db),
) -> Response:
    """Apply a charge outcome reported by the payment processor.

    Repeated or late callbacks for an already settled payment are accepted
    and change nothing.
    """
    WebhookReconciler(db).handle_outcome(
        event_type=event.type,
        processor_charge_id=event.processor_charge_id,
        amount=event.amount,
        failure_code=event.failure_code,
    )
    return Response(status_code=200)
