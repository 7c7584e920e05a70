"""Tests for SettlementService.submit_payment()."""

import re
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from copay_ledger.core.exceptions import (
    BusinessValidationError,
    InvalidInputError,
    ResourceNotFoundError,
)
from copay_ledger.models.copay import Copay, CopayStatus
from copay_ledger.models.credit_transaction import CreditTransaction, CreditTransactionType
from copay_ledger.models.patient_credit import PatientCredit
from copay_ledger.models.payment import Payment, PaymentStatus
from copay_ledger.models.payment_allocation import PaymentAllocation
from copay_ledger.repositories.payment_repository import PaymentRepository
from copay_ledger.services.allocation import AllocationRequest
from copay_ledger.services.settlement_service import SettlementService
from tests.conftest import create_copay, create_payment_method


@pytest.fixture
def service(db_session):
    return SettlementService(db_session)


def _submit(service, patient, payment_method, allocations, request_key=None):
    return service.submit_payment(
        patient_id=patient.id,
        payment_method_id=payment_method.id,
        currency="USD",
        allocation_requests=[AllocationRequest(c.id, Decimal(a)) for c, a in allocations],
        request_key=request_key or str(uuid4()),
    )


def _count(db_session, model):
    return db_session.query(model).count()


class TestSubmitPayment:
    def test_creates_pending_payment_with_charge_id(
        self, db_session, service, patient, payment_method, copay
    ):
        result = _submit(service, patient, payment_method, [(copay, "15.00")])

        assert result.status == PaymentStatus.PENDING
        assert result.replayed is False
        assert re.fullmatch(r"ch_[0-9a-f]{8}", result.processor_charge_id)

        payment = db_session.get(Payment, result.payment_id)
        assert payment.amount == Decimal("15.00")
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.processor_charge_id == result.processor_charge_id
        assert [a.amount for a in payment.allocations] == [Decimal("15.00")]

    def test_submission_does_not_touch_copay_balance(
        self, db_session, service, patient, payment_method, copay
    ):
        _submit(service, patient, payment_method, [(copay, "15.00")])

        db_session.expire_all()
        stored = db_session.get(Copay, copay.id)
        assert stored.remaining_balance == Decimal("25.00")
        assert stored.status == CopayStatus.PAYABLE.value

    def test_overpayment_caps_allocation_and_credits_excess(
        self, db_session, service, patient, payment_method, copay
    ):
        result = _submit(service, patient, payment_method, [(copay, "35.00")])

        payment = db_session.get(Payment, result.payment_id)
        assert payment.amount == Decimal("35.00")
        assert [a.amount for a in payment.allocations] == [Decimal("25.00")]

        credits = db_session.query(CreditTransaction).all()
        assert len(credits) == 1
        assert credits[0].amount == Decimal("10.00")
        assert credits[0].transaction_type == CreditTransactionType.OVERPAYMENT_CREDIT.value
        assert credits[0].payment_id == result.payment_id

        balance = db_session.query(PatientCredit).filter_by(patient_id=patient.id).one()
        assert balance.amount == Decimal("10.00")

    def test_multiple_allocations(self, db_session, service, patient, payment_method):
        copay_a = create_copay(db_session, patient, amount="25.00")
        copay_b = create_copay(db_session, patient, amount="30.00")

        result = _submit(
            service, patient, payment_method, [(copay_a, "15.00"), (copay_b, "30.00")]
        )

        payment = db_session.get(Payment, result.payment_id)
        assert payment.amount == Decimal("45.00")
        allocations = {a.copay_id: a.amount for a in payment.allocations}
        assert allocations == {copay_a.id: Decimal("15.00"), copay_b.id: Decimal("30.00")}
        assert _count(db_session, CreditTransaction) == 0

    def test_duplicate_copay_entries_are_consolidated(
        self, db_session, service, patient, payment_method, copay
    ):
        result = _submit(service, patient, payment_method, [(copay, "20.00"), (copay, "20.00")])

        payment = db_session.get(Payment, result.payment_id)
        assert payment.amount == Decimal("40.00")
        assert [a.amount for a in payment.allocations] == [Decimal("25.00")]
        credit = db_session.query(CreditTransaction).one()
        assert credit.amount == Decimal("15.00")

    def test_partially_paid_copay_is_payable(self, db_session, service, patient, payment_method):
        copay = create_copay(
            db_session, patient, amount="25.00", remaining="10.00",
            status=CopayStatus.PARTIALLY_PAID,
        )
        result = _submit(service, patient, payment_method, [(copay, "10.00")])
        assert result.status == PaymentStatus.PENDING


class TestIdempotency:
    def test_same_key_returns_same_payment(
        self, db_session, service, patient, payment_method, copay
    ):
        first = _submit(service, patient, payment_method, [(copay, "35.00")], request_key="k-1")
        second = _submit(service, patient, payment_method, [(copay, "35.00")], request_key="k-1")

        assert second.payment_id == first.payment_id
        assert second.status == first.status
        assert second.replayed is True
        assert _count(db_session, Payment) == 1
        assert _count(db_session, PaymentAllocation) == 1
        assert _count(db_session, CreditTransaction) == 1

    def test_replay_ignores_new_body(self, db_session, service, patient, payment_method, copay):
        first = _submit(service, patient, payment_method, [(copay, "10.00")], request_key="k-2")
        second = _submit(service, patient, payment_method, [(copay, "-5.00")], request_key="k-2")

        assert second.payment_id == first.payment_id
        assert _count(db_session, Payment) == 1

    def test_replay_reports_current_status(
        self, db_session, service, patient, payment_method, copay
    ):
        first = _submit(service, patient, payment_method, [(copay, "10.00")], request_key="k-3")
        db_session.query(Payment).filter_by(id=first.payment_id).update(
            {"status": PaymentStatus.FAILED.value}
        )
        db_session.commit()

        second = _submit(service, patient, payment_method, [(copay, "10.00")], request_key="k-3")
        assert second.payment_id == first.payment_id
        assert second.status == PaymentStatus.FAILED

    def test_lost_race_returns_winner(self, db_session, service, patient, payment_method, copay):
        winner = _submit(service, patient, payment_method, [(copay, "10.00")], request_key="k-4")

        # The first lookup misses, as it would for a request racing the winner
        real_lookup = PaymentRepository(db_session).get_by_request_key
        service.payment_repo.get_by_request_key = MagicMock(side_effect=[None, real_lookup("k-4")])

        result = _submit(service, patient, payment_method, [(copay, "10.00")], request_key="k-4")

        assert result.payment_id == winner.payment_id
        assert result.replayed is True
        assert _count(db_session, Payment) == 1
        assert _count(db_session, PaymentAllocation) == 1


class TestValidation:
    def test_unknown_patient(self, db_session, service, payment_method, copay):
        with pytest.raises(ResourceNotFoundError):
            service.submit_payment(
                patient_id=uuid4(),
                payment_method_id=payment_method.id,
                currency="USD",
                allocation_requests=[AllocationRequest(copay.id, Decimal("10.00"))],
                request_key="v-1",
            )
        assert _count(db_session, Payment) == 0

    def test_inactive_payment_method(self, db_session, service, patient, copay):
        inactive = create_payment_method(db_session, patient, is_active=False, last_four="0000")
        with pytest.raises(ResourceNotFoundError):
            _submit(service, patient, inactive, [(copay, "10.00")])
        assert _count(db_session, Payment) == 0

    def test_foreign_payment_method(self, db_session, service, patient, other_patient, copay):
        foreign = create_payment_method(db_session, other_patient)
        with pytest.raises(ResourceNotFoundError):
            _submit(service, patient, foreign, [(copay, "10.00")])

    def test_foreign_copay(self, db_session, service, patient, other_patient, payment_method):
        foreign = create_copay(db_session, other_patient)
        with pytest.raises(ResourceNotFoundError) as exc_info:
            _submit(service, patient, payment_method, [(foreign, "10.00")])
        assert exc_info.value.resource == "Copay"

    def test_paid_copay_is_not_payable(self, db_session, service, patient, payment_method):
        paid = create_copay(db_session, patient, remaining="0.00", status=CopayStatus.PAID)
        with pytest.raises(ResourceNotFoundError):
            _submit(service, patient, payment_method, [(paid, "10.00")])

    def test_write_off_copay_is_not_payable(self, db_session, service, patient, payment_method):
        written_off = create_copay(db_session, patient, status=CopayStatus.WRITE_OFF)
        with pytest.raises(ResourceNotFoundError):
            _submit(service, patient, payment_method, [(written_off, "10.00")])

    def test_non_positive_amount_rejects_whole_request(
        self, db_session, service, patient, payment_method
    ):
        copay_a = create_copay(db_session, patient)
        copay_b = create_copay(db_session, patient)
        with pytest.raises(BusinessValidationError) as exc_info:
            _submit(service, patient, payment_method, [(copay_a, "10.00"), (copay_b, "0.00")])

        assert exc_info.value.reason == "AMOUNT_NEGATIVE"
        assert _count(db_session, Payment) == 0
        assert _count(db_session, PaymentAllocation) == 0

    def test_excessive_amount_rejected(self, db_session, service, patient, payment_method, copay):
        with pytest.raises(BusinessValidationError) as exc_info:
            _submit(service, patient, payment_method, [(copay, "200.00")])
        assert exc_info.value.reason == "ALLOCATION_EXCESSIVE"
        assert _count(db_session, Payment) == 0

    def test_consolidated_total_checked_against_limit(
        self, db_session, service, patient, payment_method, copay
    ):
        with pytest.raises(BusinessValidationError) as exc_info:
            _submit(service, patient, payment_method, [(copay, "100.00"), (copay, "100.00")])
        assert exc_info.value.reason == "ALLOCATION_EXCESSIVE"

    def test_empty_allocations(self, service, patient, payment_method):
        with pytest.raises(BusinessValidationError) as exc_info:
            _submit(service, patient, payment_method, [])
        assert exc_info.value.reason == "ALLOCATIONS_EMPTY"

    def test_unsupported_currency(self, service, patient, payment_method, copay):
        with pytest.raises(InvalidInputError):
            service.submit_payment(
                patient_id=patient.id,
                payment_method_id=payment_method.id,
                currency="EUR",
                allocation_requests=[AllocationRequest(copay.id, Decimal("10.00"))],
                request_key="v-2",
            )


class TestDispatchFailure:
    def test_gateway_error_rolls_back_everything(
        self, db_session, patient, payment_method, copay
    ):
        processor = MagicMock()
        processor.submit_charge.side_effect = RuntimeError("processor unavailable")
        service = SettlementService(db_session, processor=processor)

        with pytest.raises(RuntimeError):
            _submit(service, patient, payment_method, [(copay, "35.00")])

        assert _count(db_session, Payment) == 0
        assert _count(db_session, PaymentAllocation) == 0
        assert _count(db_session, CreditTransaction) == 0
        assert _count(db_session, PatientCredit) == 0
