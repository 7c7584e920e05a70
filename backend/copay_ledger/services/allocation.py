"""Allocation engine.

Turns a client's requested allocations into the amounts actually applied to
each copay. Pure functions only: nothing here reads or writes the database,
so the arithmetic can be checked against literal numbers.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from copay_ledger.core.config import settings
from copay_ledger.core.exceptions import BusinessValidationError
from copay_ledger.models.copay import CopayStatus

ZERO = Decimal("0")


class CopayBalance(Protocol):
    """The slice of a copay the engine reads."""

    id: UUID
    amount: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class AllocationRequest:
    """A client asking for ``amount`` to go to ``copay_id``."""

    copay_id: UUID
    amount: Decimal


@dataclass(frozen=True)
class AppliedAllocation:
    copay_id: UUID
    requested_amount: Decimal
    applied_amount: Decimal

    @property
    def excess(self) -> Decimal:
        return self.requested_amount - self.applied_amount


@dataclass
class AllocationResult:
    """Result of running the engine over a request list."""

    applied: list[AppliedAllocation] = field(default_factory=list)
    total_excess: Decimal = ZERO

    @property
    def total_requested(self) -> Decimal:
        return sum((a.requested_amount for a in self.applied), ZERO)

    @property
    def total_applied(self) -> Decimal:
        return sum((a.applied_amount for a in self.applied), ZERO)


def derive_copay_status(
    amount: Decimal,
    remaining_balance: Decimal,
    current_status: CopayStatus,
) -> CopayStatus:
    """Copay status as a function of its balance.

    WRITE_OFF is set outside the payment flow and is never overridden.
    """
    if current_status == CopayStatus.WRITE_OFF:
        return current_status
    if remaining_balance <= ZERO:
        return CopayStatus.PAID
    if remaining_balance < amount:
        return CopayStatus.PARTIALLY_PAID
    return CopayStatus.PAYABLE


def validate_requests(
    requests: Sequence[AllocationRequest],
    copays: Mapping[UUID, CopayBalance],
    overpayment_multiplier: int | None = None,
) -> None:
    """Apply the amount rules to every request before anything is computed.

    Raises:
        BusinessValidationError: ``AMOUNT_NEGATIVE`` for an amount <= 0,
            ``ALLOCATION_EXCESSIVE`` for an amount above the copay amount
            times the overpayment multiplier.
    """
    multiplier = Decimal(
        overpayment_multiplier if overpayment_multiplier is not None
        else settings.OVERPAYMENT_MULTIPLIER
    )
    for request in requests:
        if request.amount <= ZERO:
            raise BusinessValidationError(
                "AMOUNT_NEGATIVE",
                "Allocation amount must be positive",
                details={"copay_id": str(request.copay_id), "amount": str(request.amount)},
            )
    for request in requests:
        copay = copays[request.copay_id]
        max_allowed = Decimal(str(copay.amount)) * multiplier
        if request.amount > max_allowed:
            raise BusinessValidationError(
                "ALLOCATION_EXCESSIVE",
                f"Allocation amount ({request.amount}) exceeds reasonable limit "
                f"({max_allowed}) for copay ID: {request.copay_id}",
                details={
                    "copay_id": str(request.copay_id),
                    "amount": str(request.amount),
                    "max_allowed": str(max_allowed),
                },
            )


def consolidate_requests(requests: Sequence[AllocationRequest]) -> list[AllocationRequest]:
    """Merge requests naming the same copay into one, summing their amounts.

    Order follows the first occurrence of each copay.
    """
    totals: dict[UUID, Decimal] = {}
    for request in requests:
        totals[request.copay_id] = totals.get(request.copay_id, ZERO) + request.amount
    return [AllocationRequest(copay_id=cid, amount=amount) for cid, amount in totals.items()]


def allocate(
    requests: Sequence[AllocationRequest],
    copays: Mapping[UUID, CopayBalance],
    overpayment_multiplier: int | None = None,
) -> AllocationResult:
    """Cap each request at its copay's remaining balance and total the excess.

    Every request is measured against the copay's balance as given in
    ``copays``; a copay named twice is therefore capped twice against the
    same starting balance. Use ``consolidate_requests`` first to apply a
    copay at most once.
    """
    validate_requests(requests, copays, overpayment_multiplier)

    result = AllocationResult()
    for request in requests:
        remaining = Decimal(str(copays[request.copay_id].remaining_balance))
        applied = min(request.amount, max(remaining, ZERO))
        allocation = AppliedAllocation(
            copay_id=request.copay_id,
            requested_amount=request.amount,
            applied_amount=applied,
        )
        result.applied.append(allocation)
        result.total_excess += allocation.excess
    return result
