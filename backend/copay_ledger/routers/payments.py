"""Payment API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from copay_ledger.core.database import get_db
from copay_ledger.core.exceptions import ResourceNotFoundError
from copay_ledger.models.payment import Payment
from copay_ledger.repositories.payment_repository import PaymentRepository
from copay_ledger.schemas.payment import PaymentResponse

router = APIRouter()


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get payment",
    responses={404: {"description": "Payment not found"}},
)
async def get_payment(
    payment_id: UUID,
    db: Session = Depends(get_db),
) -> Payment:
    """Get a payment with its copay allocations."""
    payment = PaymentRepository(db).get_by_id(payment_id)
    if not payment:
        raise ResourceNotFoundError("Payment", payment_id)
    return payment
